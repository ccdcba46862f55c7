"""
Claude LLM client implementation.

Uses the Anthropic Python SDK (``anthropic.AsyncAnthropic``) to interact with
the Claude API. Includes a concurrency semaphore; retries are left to the
caller's ``RetryPolicy``.
"""

import asyncio
import logging

from anthropic import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncAnthropic,
)

from voicenotes.core.config import get_settings
from voicenotes.core.exceptions import InvalidResponseError, ProviderHTTPError
from voicenotes.services.llm.base import BaseLLM

logger = logging.getLogger(__name__)


class ClaudeLLM(BaseLLM):
    """Claude API LLM client with a rate-limit semaphore."""

    name = "anthropic"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.3,
        max_concurrent: int = 5,
        timeout: float | None = None,
    ) -> None:
        settings = get_settings()
        self._api_key = api_key or settings.anthropic_api_key
        self._model = model or settings.claude_model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._client = AsyncAnthropic(
            api_key=self._api_key,
            timeout=timeout or settings.summary_timeout_seconds,
            max_retries=0,
        )

    async def _call_api(
        self,
        user_prompt: str,
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Send a request to Claude, respecting the concurrency semaphore.

        All SDK exceptions are translated so that the retry policy can rely on
        ``ProviderHTTPError`` / ``ConnectionError`` / ``TimeoutError``.
        """
        async with self._semaphore:
            try:
                kwargs: dict = {
                    "model": self._model,
                    "max_tokens": max_tokens or self._max_tokens,
                    "temperature": temperature if temperature is not None else self._temperature,
                    "messages": [{"role": "user", "content": user_prompt}],
                }
                if system:
                    kwargs["system"] = system

                response = await self._client.messages.create(**kwargs)

            except APITimeoutError as exc:
                logger.warning("Claude API timeout: %s", exc)
                raise TimeoutError(f"Claude API request timed out: {exc}") from exc
            except APIConnectionError as exc:
                logger.warning("Claude API connection error: %s", exc)
                raise ConnectionError(f"Failed to connect to Claude API: {exc}") from exc
            except APIStatusError as exc:
                logger.warning("Claude API returned HTTP %d: %s", exc.status_code, exc.message)
                raise ProviderHTTPError(exc.status_code, exc.message, provider=self.name) from exc

        if not response.content or not getattr(response.content[0], "text", None):
            raise InvalidResponseError("Claude API returned no text content")
        return response.content[0].text

    async def generate(
        self,
        prompt: str,
        system: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        """Generate a free-form text response."""
        return await self._call_api(
            user_prompt=prompt,
            system=system,
            temperature=temperature,
            max_tokens=max_tokens,
        )
