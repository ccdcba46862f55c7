"""
Ollama LLM client implementation.

Uses the Ollama Python SDK (``ollama.AsyncClient``) to interact with a
locally running Ollama server. No API key is involved.
"""

import logging

from ollama import AsyncClient, ResponseError

from voicenotes.core.config import get_settings
from voicenotes.core.exceptions import InvalidResponseError, ProviderHTTPError
from voicenotes.services.llm.base import BaseLLM

logger = logging.getLogger(__name__)


class OllamaLLM(BaseLLM):
    """Ollama local LLM client.

    Connects to a locally running Ollama server via its REST API.
    """

    name = "ollama"

    def __init__(
        self,
        base_url: str | None = None,
        model: str | None = None,
        temperature: float = 0.3,
    ) -> None:
        """Initialize the Ollama LLM client.

        Args:
            base_url: Ollama server URL (falls back to settings if not provided).
            model: Model name to use (e.g. "llama3.2").
            temperature: Sampling temperature for text generation (0.0–1.0).
        """
        settings = get_settings()
        self._base_url = base_url or settings.ollama_base_url
        self._model = model or settings.ollama_model
        self._temperature = temperature
        self._client = AsyncClient(host=self._base_url, timeout=settings.summary_timeout_seconds)

    async def _call_api(
        self,
        messages: list[dict[str, str]],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Send a chat request to the Ollama server.

        Translates SDK-specific exceptions so that the retry policy can act
        on ``ConnectionError`` / ``TimeoutError`` / ``ProviderHTTPError``.
        """
        options: dict = {
            "temperature": temperature if temperature is not None else self._temperature
        }
        if max_tokens:
            options["num_predict"] = max_tokens

        try:
            response = await self._client.chat(
                model=self._model,
                messages=messages,
                options=options,
            )
        except ConnectionError as exc:
            logger.warning("Ollama connection error (%s): %s", self._base_url, exc)
            raise ConnectionError(
                f"Failed to connect to Ollama at {self._base_url}: {exc}"
            ) from exc
        except TimeoutError as exc:
            logger.warning("Ollama timeout (%s): %s", self._base_url, exc)
            raise TimeoutError(f"Ollama request timed out ({self._base_url}): {exc}") from exc
        except ResponseError as exc:
            logger.error("Ollama response error: %s", exc)
            raise ProviderHTTPError(exc.status_code, exc.error, provider=self.name) from exc

        content = response.message.content
        if not content:
            raise InvalidResponseError("Ollama returned an empty message")
        return content

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
        return await self._call_api(
            messages=messages, temperature=temperature, max_tokens=max_tokens
        )

    async def validate(self) -> bool:
        """Ollama has no key; the server only needs to be reachable."""
        try:
            await self._client.list()
        except (ConnectionError, ResponseError) as exc:
            logger.warning("Ollama not reachable at %s: %s", self._base_url, exc)
            return False
        return True
