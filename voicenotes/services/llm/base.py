"""
Abstract base class for LLM clients.

All LLM implementations (OpenAI, Claude, Gemini, Ollama) must implement this
interface, enabling provider-agnostic summarization in the service layer.

Clients make exactly one request per call and never retry: SDK failures are
translated to ``ProviderHTTPError`` (non-2xx reply), ``TimeoutError`` or
``ConnectionError`` so that ``RetryPolicy`` can classify them.
"""

from abc import ABC, abstractmethod

from voicenotes.core.exceptions import ProviderHTTPError


class BaseLLM(ABC):
    """Interface that every LLM client must implement."""

    name: str = "llm"

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        """Generate a free-form text response.

        Args:
            prompt: The user prompt to send to the model.
            system: Optional system instruction.
            max_tokens: Output token cap.
            temperature: Sampling temperature.

        Returns:
            The model's text response.
        """

    async def validate(self) -> bool:
        """Check the configured credentials with a minimal request.

        Returns:
            False if the provider rejects the key (HTTP 401/403).
        """
        try:
            await self.generate("ping", max_tokens=1)
        except ProviderHTTPError as exc:
            if exc.http_status in (401, 403):
                return False
            raise
        return True
