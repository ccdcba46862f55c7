"""
Google Gemini LLM client.

Talks to the ``generateContent`` REST endpoint directly with ``httpx``.
"""

import logging

import httpx

from voicenotes.core.config import get_settings
from voicenotes.core.exceptions import InvalidResponseError, ProviderHTTPError
from voicenotes.services.llm.base import BaseLLM

logger = logging.getLogger(__name__)


class GeminiLLM(BaseLLM):
    """Gemini REST client.

    Args:
        api_key: Gemini API key (falls back to settings).
        model: Model name, e.g. "gemini-1.5-flash".
        base_url: API root, e.g. "https://generativelanguage.googleapis.com/v1".
        temperature: Default sampling temperature.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport, mainly for tests.
    """

    name = "gemini"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        temperature: float = 0.3,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._api_key = api_key or settings.gemini_api_key
        self._model = model or settings.gemini_model
        self._base_url = (base_url or settings.gemini_base_url).rstrip("/")
        self._temperature = temperature
        self._timeout = timeout or settings.summary_timeout_seconds
        self._transport = transport

    async def generate(
        self,
        prompt: str,
        system: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        """Generate a free-form text response."""
        text = f"{system}\n\n{prompt}" if system else prompt
        generation_config: dict = {
            "temperature": temperature if temperature is not None else self._temperature
        }
        if max_tokens:
            generation_config["maxOutputTokens"] = max_tokens
        payload = {
            "contents": [{"parts": [{"text": text}]}],
            "generationConfig": generation_config,
        }
        url = f"{self._base_url}/models/{self._model}:generateContent"

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(url, params={"key": self._api_key}, json=payload)
        except httpx.TimeoutException as exc:
            logger.warning("Gemini API timeout: %s", exc)
            raise TimeoutError(f"Gemini API request timed out: {exc}") from exc
        except httpx.TransportError as exc:
            logger.warning("Gemini API connection error: %s", exc)
            raise ConnectionError(f"Failed to connect to Gemini API: {exc}") from exc

        if response.status_code != 200:
            logger.warning("Gemini API returned HTTP %d", response.status_code)
            raise ProviderHTTPError(response.status_code, response.text[:200], provider=self.name)

        try:
            return response.json()["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise InvalidResponseError("Gemini API response has no candidate text") from exc
