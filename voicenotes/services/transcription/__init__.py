"""
Transcription module - Speech-to-text abstraction layer.

Factory function for creating STT instances based on provider configuration.
"""

from .base import TranscriptionProvider

__all__ = ["TranscriptionProvider", "create_stt"]


def create_stt(provider: str, **kwargs) -> TranscriptionProvider:
    """
    Factory function to create STT instance based on provider.

    Args:
        provider: STT provider name ("openai"/"cloud" or "whisper"/"local")
        **kwargs: Provider-specific configuration

    Returns:
        TranscriptionProvider implementation instance

    Raises:
        ValueError: If provider is unknown
    """
    if provider == "openai" or provider == "cloud":
        from .openai_whisper import OpenAIWhisperSTT
        return OpenAIWhisperSTT(**kwargs)
    elif provider == "whisper" or provider == "local":
        from .whisper import WhisperSTT
        return WhisperSTT(**kwargs)
    else:
        raise ValueError(f"Unknown STT provider: {provider}")
