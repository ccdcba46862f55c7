"""
Application configuration via pydantic-settings.

Loads values from .env file with sensible defaults for local development.
Use ``get_settings()`` to obtain the cached singleton instance.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Voice Notes processing settings loaded from environment / .env file.

    All settings can be overridden via environment variables or a `.env` file.
    Field names map directly to env var names (case-insensitive).

    Attributes:
        summary_provider: Provider used first for summaries ("app_default",
            "openai", "anthropic", "gemini", "ollama").
        use_local_transcription: Transcribe with on-device faster-whisper
            instead of the OpenAI Whisper API.
        transcription_max_upload_bytes: Hard upload limit of the cloud STT API.
        summary_chunk_threshold_chars: Transcripts longer than this are
            summarized chunk by chunk and then combined.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Silently ignore unrecognized env vars
    )

    # --- Summarization providers ---
    summary_provider: str = "app_default"
    default_summary_length: str = "standard"  # brief, standard, detailed
    default_summary_mode: str = "personal"

    # App-default provider runs on the app's own OpenAI key
    openai_app_key: str = ""
    openai_summary_model: str = "gpt-4o-mini"

    # User-supplied provider keys (the credential store reads these)
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    gemini_api_key: str = ""

    claude_model: str = "claude-sonnet-4-20250514"
    gemini_model: str = "gemini-1.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1"

    # Ollama (local LLM) settings
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.2"

    # --- Transcription ---
    use_local_transcription: bool = False
    whisper_api_model: str = "whisper-1"
    whisper_model: str = "base"  # On-device model size: tiny, base, small, medium, large-v3
    transcription_max_upload_bytes: int = 25 * 1024 * 1024
    audio_chunk_threshold_seconds: float = 600.0  # Longer audio is split into windows
    audio_chunk_seconds: float = 480.0
    transcription_timeout_seconds: float = 900.0  # Per upload; large files take minutes

    # --- Summarization limits ---
    summary_chunk_threshold_chars: int = 90_000  # ~60+ minutes of speech
    summary_chunk_size: int = 40_000
    summary_chunk_overlap: int = 2_000
    summary_max_chars: int = 1_000_000
    summary_timeout_seconds: float = 120.0

    # --- Retry / backoff ---
    rate_limit_max_retries: int = 5
    rate_limit_max_delay: float = 30.0
    server_error_max_retries: int = 3
    server_error_max_delay: float = 20.0
    network_max_retries: int = 3
    network_max_delay: float = 20.0

    # --- Operation registry ---
    operation_cleanup_delay: float = 0.5  # Grace period before terminal ops are evicted
    operation_dormant_after_seconds: float = 600.0
    pending_batch_limit: int = 3
    pending_batch_delay: float = 1.0

    # --- Application ---
    app_host: str = "0.0.0.0"  # Bind address for the FastAPI server
    app_port: int = 8000
    log_level: str = "INFO"  # Python logging level
    cors_origins: list[str] = ["http://localhost:3000"]


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings singleton.

    Uses ``functools.lru_cache`` so the .env file is read only once.
    Subsequent calls return the same ``Settings`` instance.

    Returns:
        Settings: The application-wide configuration object.
    """
    return Settings()
