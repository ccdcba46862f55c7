"""
Lookup table from provider identifier to summarization provider.

The table is validated at construction: every ``ProviderType`` must have an
implementation, so dispatch by identifier can never miss at runtime.
"""

import logging
from collections.abc import Mapping

from voicenotes.core.exceptions import UnknownProviderError
from voicenotes.core.models import ProviderType
from voicenotes.services.credentials import CredentialStore
from voicenotes.services.summarization.base import SummarizationProvider
from voicenotes.services.summarization.llm_summarizer import LLMSummaryProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Provider table plus configuration queries over the credential store.

    Args:
        providers: Implementation for every ``ProviderType``.
        credentials: Store consulted for "has key" checks.

    Raises:
        UnknownProviderError: If any provider identifier has no entry.
    """

    def __init__(
        self,
        providers: Mapping[ProviderType, SummarizationProvider],
        credentials: CredentialStore,
    ) -> None:
        missing = [p for p in ProviderType if p not in providers]
        if missing:
            raise UnknownProviderError(", ".join(p.value for p in missing))
        self._providers = dict(providers)
        self._credentials = credentials

    @classmethod
    def default(cls, credentials: CredentialStore, settings=None) -> "ProviderRegistry":
        """Build the standard LLM-backed provider for every identifier."""
        return cls(
            {p: LLMSummaryProvider(p, credentials, settings=settings) for p in ProviderType},
            credentials,
        )

    def provider(self, provider_type: ProviderType | str) -> SummarizationProvider:
        try:
            return self._providers[ProviderType(provider_type)]
        except ValueError as exc:
            raise UnknownProviderError(str(provider_type)) from exc

    def is_configured(self, provider_type: ProviderType) -> bool:
        """Ollama runs locally; every other provider needs a stored key, the app key included."""
        if provider_type is ProviderType.ollama:
            return True
        return self._credentials.has_key(provider_type)

    def configured_providers(self) -> list[ProviderType]:
        """Providers usable right now, in registry order."""
        return [p for p in ProviderType if self.is_configured(p)]

    async def validate_provider(
        self, provider_type: ProviderType | str, api_key: str | None = None
    ) -> bool:
        """Validate ``api_key`` (or the stored key) against the provider.

        Providers without a user key always validate.
        """
        provider = self.provider(provider_type)
        if not provider.requires_api_key:
            return True
        key = api_key or self._credentials.get(provider.provider_type)
        if not key:
            return False
        valid = await provider.validate_api_key(key)
        logger.info("Key validation for %s: %s", provider.provider_type, valid)
        return valid
