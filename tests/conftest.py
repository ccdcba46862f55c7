"""Shared pytest fixtures for the Voice Notes test suite.

Provides settings tuned for fast tests (no backoff delays, short cleanup
grace period), mock LLM clients, credential stores and a scriptable fake
transcription provider.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from voicenotes.core.config import Settings
from voicenotes.core.models import ProviderType, TranscriptionResult
from voicenotes.services.credentials import InMemoryCredentialStore
from voicenotes.services.llm.base import BaseLLM
from voicenotes.services.transcription.base import TranscriptionProvider

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def _make_settings(**overrides) -> Settings:
    """Settings with zero backoff delays and no keys from the environment."""
    defaults = {
        "_env_file": None,
        "summary_provider": "app_default",
        "openai_app_key": "",
        "openai_api_key": "",
        "anthropic_api_key": "",
        "gemini_api_key": "",
        "rate_limit_max_delay": 0.0,
        "server_error_max_delay": 0.0,
        "network_max_delay": 0.0,
        "operation_cleanup_delay": 0.05,
        "use_local_transcription": False,
    }
    defaults.update(overrides)
    return Settings(**defaults)


@pytest.fixture
def make_settings():
    """Factory for fast test settings; keyword arguments override fields."""
    return _make_settings


@pytest.fixture
def settings():
    """Fast test settings with no provider keys configured."""
    return _make_settings()


# ---------------------------------------------------------------------------
# LLM / credentials
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_llm():
    """Create a mock LLM client returning a short markdown summary.

    Returns:
        AsyncMock: A mock implementing the BaseLLM interface.
    """
    llm = AsyncMock(spec=BaseLLM)
    llm.generate.return_value = "## Key points\n- The team agreed on the plan."
    return llm


@pytest.fixture
def credentials():
    """Credential store with keys for every keyed provider."""
    return InMemoryCredentialStore(
        {
            ProviderType.app_default: "app-key",
            ProviderType.openai: "sk-openai",
            ProviderType.anthropic: "sk-ant",
            ProviderType.gemini: "gm-key",
        }
    )


# ---------------------------------------------------------------------------
# STT
# ---------------------------------------------------------------------------


class FakeTranscriber(TranscriptionProvider):
    """Transcription provider driven by the test.

    The call blocks on ``release`` (when set) and polls the cancellation
    token while waiting, the way a real provider checks it between chunks.
    """

    name = "fake"

    def __init__(self, text: str = "Speaker 1: Hello there.", error: Exception | None = None):
        self.text = text
        self.error = error
        self.release: asyncio.Event | None = None
        self.started = asyncio.Event()
        self.calls: list[dict] = []

    async def transcribe(
        self,
        audio_path,
        language_hint=None,
        on_device_preferred=False,
        progress=None,
        cancel_token=None,
    ):
        self.calls.append({"audio_path": audio_path, "language_hint": language_hint})
        self.started.set()
        if progress is not None:
            progress(0.5)
        if self.release is not None:
            while not self.release.is_set():
                cancel_token.raise_if_cancelled()
                await asyncio.sleep(0.01)
        cancel_token.raise_if_cancelled()
        if self.error is not None:
            raise self.error
        return TranscriptionResult(text=self.text, language="en", duration=3.0)


@pytest.fixture
def fake_transcriber():
    return FakeTranscriber()
