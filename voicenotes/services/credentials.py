"""
Credential store: API keys per summarization provider.

The processing core only reads keys. ``SettingsCredentialStore`` serves the
keys configured through ``Settings`` (env / .env); ``InMemoryCredentialStore``
is for tests and embedding callers that manage keys themselves.
"""

from abc import ABC, abstractmethod

from voicenotes.core.config import get_settings
from voicenotes.core.models import ProviderType


class CredentialStore(ABC):
    """Lookup of API keys by provider identifier."""

    @abstractmethod
    def get(self, provider: ProviderType) -> str | None:
        """Return the key for ``provider``, or None when absent."""

    def has_key(self, provider: ProviderType) -> bool:
        return bool(self.get(provider))


class SettingsCredentialStore(CredentialStore):
    """Reads provider keys from application settings."""

    _FIELDS = {
        ProviderType.app_default: "openai_app_key",
        ProviderType.openai: "openai_api_key",
        ProviderType.anthropic: "anthropic_api_key",
        ProviderType.gemini: "gemini_api_key",
    }

    def __init__(self, settings=None) -> None:
        self._settings = settings or get_settings()

    def get(self, provider: ProviderType) -> str | None:
        field = self._FIELDS.get(provider)
        if field is None:
            return None
        return getattr(self._settings, field, None) or None


class InMemoryCredentialStore(CredentialStore):
    """Dictionary-backed store."""

    def __init__(self, keys: dict[ProviderType, str] | None = None) -> None:
        self._keys: dict[ProviderType, str] = dict(keys or {})

    def get(self, provider: ProviderType) -> str | None:
        return self._keys.get(provider) or None

    def set(self, provider: ProviderType, key: str | None) -> None:
        if key:
            self._keys[provider] = key
        else:
            self._keys.pop(provider, None)
