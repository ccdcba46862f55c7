"""
Abstract base class for Speech-to-Text providers.

All STT implementations (OpenAI Whisper API, on-device faster-whisper) must
implement this interface, enabling provider-agnostic transcription in the
operation registry.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable

from voicenotes.core.cancellation import CancellationToken
from voicenotes.core.models import TranscriptionResult

ProgressCallback = Callable[[float], None]


class TranscriptionProvider(ABC):
    """Interface that every STT provider must implement."""

    name: str = "stt"

    @abstractmethod
    async def transcribe(
        self,
        audio_path: str,
        language_hint: str | None = None,
        on_device_preferred: bool = False,
        progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> TranscriptionResult:
        """Transcribe an audio file to text.

        Args:
            audio_path: Path to the audio file.
            language_hint: ISO language code, or None to auto-detect.
            on_device_preferred: Caller preference for local processing.
                Cloud providers ignore it.
            progress: Called with overall progress in ``[0, 1]``. May be
                invoked from a worker thread.
            cancel_token: Polled at every suspension point.

        Returns:
            The stitched transcript with speaker-labelled segments.

        Raises:
            NotFoundError, PermissionDeniedError, ApiKeyMissingError,
            QuotaExceededError, InvalidResponseError, NetworkError,
            OperationCancelledError
        """
