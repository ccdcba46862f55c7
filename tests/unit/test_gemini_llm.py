"""Unit tests for GeminiLLM (httpx MockTransport, no network)."""

import json

import httpx
import pytest

from voicenotes.core.exceptions import InvalidResponseError, ProviderHTTPError
from voicenotes.services.llm.gemini import GeminiLLM


def _ok(text="Gemini summary."):
    return httpx.Response(
        200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]}
    )


def _llm(handler) -> GeminiLLM:
    return GeminiLLM(
        api_key="gm-test",
        model="gemini-1.5-flash",
        base_url="https://gemini.test/v1/",
        timeout=5.0,
        transport=httpx.MockTransport(handler),
    )


class TestGenerate:
    async def test_returns_candidate_text(self):
        llm = _llm(lambda request: _ok("Hello"))
        assert await llm.generate("Say hello") == "Hello"

    async def test_request_shape(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            seen["body"] = json.loads(request.content)
            return _ok()

        await _llm(handler).generate("the prompt", system="be brief", max_tokens=300)

        assert seen["url"].path == "/v1/models/gemini-1.5-flash:generateContent"
        assert seen["url"].params["key"] == "gm-test"
        assert seen["body"]["contents"][0]["parts"][0]["text"] == "be brief\n\nthe prompt"
        assert seen["body"]["generationConfig"]["maxOutputTokens"] == 300
        assert seen["body"]["generationConfig"]["temperature"] == 0.3

    async def test_missing_candidates(self):
        llm = _llm(lambda request: httpx.Response(200, json={"candidates": []}))
        with pytest.raises(InvalidResponseError):
            await llm.generate("prompt")


class TestErrorHandling:
    @pytest.mark.parametrize("status", [400, 401, 429, 503])
    async def test_non_200_becomes_provider_http_error(self, status):
        llm = _llm(lambda request: httpx.Response(status, text="nope"))

        with pytest.raises(ProviderHTTPError) as exc_info:
            await llm.generate("prompt")
        assert exc_info.value.http_status == status
        assert exc_info.value.provider == "gemini"

    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(TimeoutError):
            await _llm(handler).generate("prompt")

    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ConnectionError):
            await _llm(handler).generate("prompt")

    async def test_validate_false_on_forbidden(self):
        llm = _llm(lambda request: httpx.Response(403, text="forbidden"))
        assert await llm.validate() is False

    async def test_validate_raises_on_server_error(self):
        llm = _llm(lambda request: httpx.Response(500, text="boom"))
        with pytest.raises(ProviderHTTPError):
            await llm.validate()
