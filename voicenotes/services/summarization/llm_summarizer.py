"""
LLM-backed summarization provider.

One ``LLMSummaryProvider`` exists per provider identifier; all of them share
this code and differ only in the LLM client they build. Transcripts longer
than ``summary_chunk_threshold_chars`` are split into overlapping windows
that are summarized at brief detail, then merged by exactly one combine call
that honors the requested length and mode.
"""

import logging
from collections.abc import Callable

from voicenotes.core.cancellation import CancellationToken
from voicenotes.core.config import get_settings
from voicenotes.core.exceptions import (
    ApiKeyMissingError,
    EmptyTextError,
    InvalidResponseError,
    TextTooLongError,
    VoiceNotesError,
)
from voicenotes.core.models import ProviderType, SummaryLength, SummaryMode, SummaryResult
from voicenotes.core.utils import prettify_summary, strip_code_fences
from voicenotes.services.chunking import split_text
from voicenotes.services.credentials import CredentialStore
from voicenotes.services.llm import BaseLLM, create_llm
from voicenotes.services.retry import RetryPolicy
from voicenotes.services.summarization.base import ProgressCallback, SummarizationProvider
from voicenotes.services.summarization.prompts import (
    chunk_prompt,
    combine_prompt,
    summary_prompt,
    system_prompt,
)

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str | None], BaseLLM]


def default_client_factory(provider_type: ProviderType) -> ClientFactory:
    """Return a factory building the LLM client for ``provider_type`` from a key."""
    if provider_type is ProviderType.app_default:
        return lambda key: create_llm("openai", api_key=key, name=ProviderType.app_default.value)
    if provider_type is ProviderType.openai:
        return lambda key: create_llm("openai", api_key=key)
    if provider_type is ProviderType.anthropic:
        return lambda key: create_llm("anthropic", api_key=key)
    if provider_type is ProviderType.gemini:
        return lambda key: create_llm("gemini", api_key=key)
    return lambda _key: create_llm("ollama")


class LLMSummaryProvider(SummarizationProvider):
    """Summarizes transcripts through one LLM client.

    Args:
        provider_type: Identifier this provider is registered under.
        credentials: Store the API key is read from at call time.
        client_factory: Builds the LLM client from an API key.
        settings: Optional Settings instance (defaults to get_settings()).
        retry_policy: Retry policy wrapped around every LLM request.
    """

    def __init__(
        self,
        provider_type: ProviderType,
        credentials: CredentialStore,
        client_factory: ClientFactory | None = None,
        settings=None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self.provider_type = provider_type
        self._credentials = credentials
        self._client_factory = client_factory or default_client_factory(provider_type)
        self._settings = settings or get_settings()
        self._retry = retry_policy or RetryPolicy.from_settings(
            self._settings, too_large_error=TextTooLongError
        )

    @property
    def needs_key(self) -> bool:
        """Whether a stored key must exist before calling out.

        App default has no user key but still runs on the app key.
        """
        return self.provider_type is not ProviderType.ollama

    async def validate_api_key(self, api_key: str | None) -> bool:
        key = api_key or self._credentials.get(self.provider_type)
        if self.needs_key and not key:
            return False
        try:
            return await self._client_factory(key).validate()
        except (VoiceNotesError, ConnectionError, TimeoutError) as exc:
            logger.warning("Key validation for %s failed: %s", self.provider_type, exc)
            return False

    async def _generate(
        self,
        client: BaseLLM,
        prompt: str,
        system: str,
        max_tokens: int,
        cancel_token: CancellationToken,
        label: str,
    ) -> str:
        return await self._retry.run(
            lambda: client.generate(prompt, system=system, max_tokens=max_tokens),
            cancel_token,
            label=f"{self.provider_type} {label}",
        )

    async def summarize(
        self,
        transcript: str,
        length: SummaryLength = SummaryLength.standard,
        progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
        mode: SummaryMode = SummaryMode.personal,
    ) -> SummaryResult:
        token = cancel_token or CancellationToken()
        report = progress or (lambda _value: None)

        text = transcript.strip()
        if not text:
            raise EmptyTextError()
        token.raise_if_cancelled()
        if len(text) > self._settings.summary_max_chars:
            raise TextTooLongError(len(text), self._settings.summary_max_chars)

        key = self._credentials.get(self.provider_type)
        if self.needs_key and not key:
            raise ApiKeyMissingError(self.provider_type.value)

        client = self._client_factory(key)
        system = system_prompt(mode, length)
        report(0.1)

        if len(text) > self._settings.summary_chunk_threshold_chars:
            raw = await self._summarize_chunked(client, text, length, mode, report, token)
        else:
            raw = await self._generate(
                client, summary_prompt(text), system, length.max_tokens, token, "summary"
            )
        token.raise_if_cancelled()

        clean = prettify_summary(raw)
        if not clean:
            raise InvalidResponseError(f"{self.name} returned an empty summary")
        report(1.0)
        return SummaryResult(clean=clean, raw=raw)

    async def _summarize_chunked(
        self,
        client: BaseLLM,
        text: str,
        length: SummaryLength,
        mode: SummaryMode,
        report: ProgressCallback,
        cancel_token: CancellationToken,
    ) -> str:
        """Map each window at brief detail, then reduce with one combine call."""
        chunks = split_text(
            text, self._settings.summary_chunk_size, self._settings.summary_chunk_overlap
        )
        total = len(chunks)
        logger.info(
            "Transcript of %d chars split into %d chunks for %s",
            len(text),
            total,
            self.provider_type,
        )

        brief = SummaryLength.brief
        chunk_system = system_prompt(mode, brief)
        partials: list[str] = []
        for chunk in chunks:
            cancel_token.raise_if_cancelled()
            partial = await self._generate(
                client,
                chunk_prompt(chunk.text, chunk.index, total),
                chunk_system,
                brief.max_tokens,
                cancel_token,
                f"chunk {chunk.index + 1}/{total}",
            )
            partials.append(strip_code_fences(partial))
            # Chunks cover 10%..80%, the combine pass the rest
            report(0.1 + 0.7 * (chunk.index + 1) / total)

        cancel_token.raise_if_cancelled()
        return await self._generate(
            client,
            combine_prompt(partials),
            system_prompt(mode, length),
            length.max_tokens,
            cancel_token,
            "combine",
        )
