"""Unit tests for ProviderRegistry and the credential stores."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from voicenotes.core.exceptions import UnknownProviderError
from voicenotes.core.models import ProviderType
from voicenotes.services.credentials import InMemoryCredentialStore, SettingsCredentialStore
from voicenotes.services.summarization import LLMSummaryProvider, ProviderRegistry


@pytest.fixture
def registry(credentials, settings):
    return ProviderRegistry.default(credentials, settings=settings)


class TestConstruction:
    def test_default_covers_every_provider(self, registry):
        for provider_type in ProviderType:
            provider = registry.provider(provider_type)
            assert isinstance(provider, LLMSummaryProvider)
            assert provider.provider_type is provider_type

    def test_missing_implementation_rejected(self, credentials, settings):
        partial = {
            ProviderType.openai: LLMSummaryProvider(
                ProviderType.openai, credentials, settings=settings
            )
        }
        with pytest.raises(UnknownProviderError):
            ProviderRegistry(partial, credentials)

    def test_lookup_by_string(self, registry):
        assert registry.provider("gemini").provider_type is ProviderType.gemini

    def test_unknown_identifier(self, registry):
        with pytest.raises(UnknownProviderError):
            registry.provider("mistral")


class TestConfiguration:
    def test_all_configured(self, registry):
        assert registry.configured_providers() == list(ProviderType)

    def test_only_ollama_configured_without_keys(self, settings):
        registry = ProviderRegistry.default(InMemoryCredentialStore(), settings=settings)
        assert registry.configured_providers() == [ProviderType.ollama]
        assert not registry.is_configured(ProviderType.anthropic)

    def test_app_default_needs_the_app_key(self, settings):
        store = InMemoryCredentialStore()
        registry = ProviderRegistry.default(store, settings=settings)
        assert not registry.is_configured(ProviderType.app_default)

        store.set(ProviderType.app_default, "app-key")
        assert registry.is_configured(ProviderType.app_default)

    def test_display_names(self):
        assert ProviderType.anthropic.display_name == "Anthropic/Claude"
        assert ProviderType.ollama.requires_api_key is False


class TestValidateProvider:
    async def test_keyless_provider_always_valid(self, registry):
        assert await registry.validate_provider(ProviderType.ollama) is True

    async def test_no_key_is_invalid(self, settings):
        registry = ProviderRegistry.default(InMemoryCredentialStore(), settings=settings)
        assert await registry.validate_provider(ProviderType.gemini) is False

    async def test_delegates_with_candidate_key(self, registry, monkeypatch):
        provider = registry.provider(ProviderType.anthropic)
        check = AsyncMock(return_value=True)
        monkeypatch.setattr(provider, "validate_api_key", check)

        assert await registry.validate_provider("anthropic", api_key="sk-candidate") is True
        check.assert_awaited_once_with("sk-candidate")

    async def test_falls_back_to_stored_key(self, registry, monkeypatch):
        provider = registry.provider(ProviderType.openai)
        check = AsyncMock(return_value=False)
        monkeypatch.setattr(provider, "validate_api_key", check)

        assert await registry.validate_provider(ProviderType.openai) is False
        check.assert_awaited_once_with("sk-openai")


class TestCredentialStores:
    def test_settings_store_maps_fields(self):
        settings = SimpleNamespace(
            openai_app_key="app",
            openai_api_key="user",
            anthropic_api_key="",
            gemini_api_key="gm",
        )
        store = SettingsCredentialStore(settings)

        assert store.get(ProviderType.app_default) == "app"
        assert store.get(ProviderType.openai) == "user"
        assert store.get(ProviderType.anthropic) is None
        assert store.get(ProviderType.ollama) is None
        assert store.has_key(ProviderType.gemini)

    def test_in_memory_store_set_and_clear(self):
        store = InMemoryCredentialStore()
        store.set(ProviderType.openai, "sk-1")
        assert store.get(ProviderType.openai) == "sk-1"
        store.set(ProviderType.openai, None)
        assert not store.has_key(ProviderType.openai)
