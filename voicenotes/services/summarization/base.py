"""
Abstract base class for summarization providers.

All summarization implementations must implement this interface,
enabling provider-agnostic summarization in the fallback chain.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable

from voicenotes.core.cancellation import CancellationToken
from voicenotes.core.models import ProviderType, SummaryLength, SummaryMode, SummaryResult

ProgressCallback = Callable[[float], None]


class SummarizationProvider(ABC):
    """Interface that every summarizer must implement."""

    provider_type: ProviderType

    @property
    def name(self) -> str:
        return self.provider_type.display_name

    @property
    def requires_api_key(self) -> bool:
        return self.provider_type.requires_api_key

    @abstractmethod
    async def validate_api_key(self, api_key: str | None) -> bool:
        """Check whether ``api_key`` is accepted by the provider."""

    @abstractmethod
    async def summarize(
        self,
        transcript: str,
        length: SummaryLength = SummaryLength.standard,
        progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
        mode: SummaryMode = SummaryMode.personal,
    ) -> SummaryResult:
        """Summarize a transcript.

        Args:
            transcript: Full transcript text.
            length: Requested level of detail.
            progress: Called with progress in ``[0, 1]``.
            cancel_token: Polled before each request and retry.
            mode: Conversation type selecting the prompt template.

        Returns:
            A SummaryResult with the prettified and raw model output.

        Raises:
            EmptyTextError, ApiKeyMissingError, QuotaExceededError,
            TextTooLongError, InvalidResponseError, NetworkError,
            OperationCancelledError
        """
