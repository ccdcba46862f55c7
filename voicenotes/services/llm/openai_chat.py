"""
OpenAI chat-completions LLM client.

Serves two summarization providers: ``app_default`` (running on the app's own
key) and ``openai`` (running on the user's key).
"""

import logging

from openai import APIConnectionError, APIStatusError, APITimeoutError, AsyncOpenAI

from voicenotes.core.config import get_settings
from voicenotes.core.exceptions import InvalidResponseError, ProviderHTTPError
from voicenotes.services.llm.base import BaseLLM

logger = logging.getLogger(__name__)


class OpenAILLM(BaseLLM):
    """OpenAI chat-completions client.

    Args:
        api_key: OpenAI API key (falls back to the user key in settings).
        model: Chat model name (defaults to ``settings.openai_summary_model``).
        temperature: Default sampling temperature.
        timeout: Per-request timeout in seconds.
        name: Provider identifier used in errors and logs.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        temperature: float = 0.3,
        timeout: float | None = None,
        name: str = "openai",
    ) -> None:
        settings = get_settings()
        self.name = name
        self._api_key = api_key or settings.openai_api_key
        self._model = model or settings.openai_summary_model
        self._temperature = temperature
        self._client = AsyncOpenAI(
            api_key=self._api_key,
            timeout=timeout or settings.summary_timeout_seconds,
            max_retries=0,
        )

    async def generate(
        self,
        prompt: str,
        system: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        """Generate a free-form text response."""
        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        kwargs: dict = {
            "model": self._model,
            "messages": messages,
            "temperature": temperature if temperature is not None else self._temperature,
        }
        if max_tokens:
            kwargs["max_tokens"] = max_tokens

        try:
            response = await self._client.chat.completions.create(**kwargs)
        except APITimeoutError as exc:
            logger.warning("OpenAI API timeout: %s", exc)
            raise TimeoutError(f"OpenAI API request timed out: {exc}") from exc
        except APIConnectionError as exc:
            logger.warning("OpenAI API connection error: %s", exc)
            raise ConnectionError(f"Failed to connect to OpenAI API: {exc}") from exc
        except APIStatusError as exc:
            logger.warning("OpenAI API returned HTTP %d: %s", exc.status_code, exc.message)
            raise ProviderHTTPError(exc.status_code, exc.message, provider=self.name) from exc

        if not response.choices or not response.choices[0].message.content:
            raise InvalidResponseError("OpenAI API returned no message content")
        return response.choices[0].message.content
