"""Unit tests for the OpenAI chat-completions client."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from openai import APIConnectionError, InternalServerError

from voicenotes.core.exceptions import InvalidResponseError, ProviderHTTPError
from voicenotes.services.llm import create_llm
from voicenotes.services.llm.openai_chat import OpenAILLM


def _make_completion(text):
    message = SimpleNamespace(content=text)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _mock_settings(**overrides):
    defaults = {
        "openai_api_key": "sk-user",
        "openai_summary_model": "gpt-4o-mini",
        "summary_timeout_seconds": 60.0,
    }
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


@pytest.fixture
def mock_client():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=_make_completion("Summary."))
    return client


@pytest.fixture
def llm(mock_client):
    with patch("voicenotes.services.llm.openai_chat.get_settings", return_value=_mock_settings()):
        with patch("voicenotes.services.llm.openai_chat.AsyncOpenAI", return_value=mock_client):
            instance = OpenAILLM()
    return instance


class TestInit:
    def test_sdk_retries_disabled(self):
        with patch(
            "voicenotes.services.llm.openai_chat.get_settings", return_value=_mock_settings()
        ):
            with patch("voicenotes.services.llm.openai_chat.AsyncOpenAI") as mock_cls:
                OpenAILLM(api_key="sk-app", name="app_default")

        mock_cls.assert_called_once_with(api_key="sk-app", timeout=60.0, max_retries=0)

    def test_factory_names_app_default(self):
        with patch(
            "voicenotes.services.llm.openai_chat.get_settings", return_value=_mock_settings()
        ):
            with patch("voicenotes.services.llm.openai_chat.AsyncOpenAI"):
                llm = create_llm("openai", api_key="sk-app", name="app_default")
        assert isinstance(llm, OpenAILLM)
        assert llm.name == "app_default"

    def test_factory_rejects_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown LLM provider"):
            create_llm("mystery")


class TestGenerate:
    async def test_messages_and_options(self, llm, mock_client):
        result = await llm.generate("prompt", system="system", max_tokens=800)

        assert result == "Summary."
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["messages"] == [
            {"role": "system", "content": "system"},
            {"role": "user", "content": "prompt"},
        ]
        assert kwargs["max_tokens"] == 800

    async def test_empty_choice(self, llm, mock_client):
        mock_client.chat.completions.create.return_value = _make_completion(None)
        with pytest.raises(InvalidResponseError):
            await llm.generate("prompt")

    async def test_server_error(self, llm, mock_client):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        mock_client.chat.completions.create.side_effect = InternalServerError(
            "upstream failed", response=httpx.Response(502, request=request), body=None
        )

        with pytest.raises(ProviderHTTPError) as exc_info:
            await llm.generate("prompt")
        assert exc_info.value.http_status == 502

    async def test_connection_error(self, llm, mock_client):
        mock_client.chat.completions.create.side_effect = APIConnectionError(
            request=MagicMock()
        )
        with pytest.raises(ConnectionError):
            await llm.generate("prompt")
