"""
Voice Notes exception hierarchy.

All application-specific exceptions inherit from VoiceNotesError,
enabling centralized error handling in the API middleware layer. The
transcription and summarization pipelines share one taxonomy so a failed
operation can carry its terminating error straight to the caller.
"""

from datetime import UTC, datetime


class VoiceNotesError(Exception):
    """Base exception for all Voice Notes errors."""

    def __init__(
        self,
        detail: str = "An unexpected error occurred",
        code: str = "VOICENOTES_ERROR",
        status_code: int = 500,
    ) -> None:
        self.detail = detail
        self.code = code
        self.status_code = status_code
        self.timestamp = datetime.now(UTC).isoformat()
        super().__init__(detail)


# ---------------------------------------------------------------------------
# Shared processing taxonomy
# ---------------------------------------------------------------------------


class NotFoundError(VoiceNotesError):
    """Raised when the audio file to transcribe does not exist."""

    def __init__(self, path: str = "") -> None:
        super().__init__(
            detail=f"Audio file not found: {path}" if path else "Audio file not found",
            code="NOT_FOUND",
            status_code=404,
        )


class PermissionDeniedError(VoiceNotesError):
    """Raised when the provider or filesystem refuses access."""

    def __init__(self, detail: str = "Permission denied") -> None:
        super().__init__(detail=detail, code="PERMISSION_DENIED", status_code=403)


class ApiKeyMissingError(VoiceNotesError):
    """Raised when a provider key is absent or rejected (HTTP 401)."""

    def __init__(self, provider: str = "") -> None:
        suffix = f" for {provider}" if provider else ""
        super().__init__(
            detail=f"API key is missing or invalid{suffix}",
            code="API_KEY_MISSING",
            status_code=401,
        )


class QuotaExceededError(VoiceNotesError):
    """Raised when a provider keeps rate limiting after all retries."""

    def __init__(self, detail: str = "API quota exceeded") -> None:
        super().__init__(detail=detail, code="QUOTA_EXCEEDED", status_code=429)


class TextTooLongError(VoiceNotesError):
    """Raised when a transcript exceeds what any summarization path accepts."""

    def __init__(self, length: int | None = None, limit: int | None = None) -> None:
        detail = "Text is too long for summarization"
        if length is not None and limit is not None:
            detail = f"{detail} ({length} > {limit} characters)"
        super().__init__(detail=detail, code="TEXT_TOO_LONG", status_code=413)


class FileTooLargeError(VoiceNotesError):
    """Raised when an audio upload is rejected for size."""

    def __init__(self, detail: str = "Audio file is too large for transcription") -> None:
        super().__init__(detail=detail, code="FILE_TOO_LARGE", status_code=413)


class EmptyTextError(VoiceNotesError):
    """Raised when summarization is requested for an empty transcript."""

    def __init__(self) -> None:
        super().__init__(
            detail="No text provided for summarization",
            code="EMPTY_TEXT",
            status_code=422,
        )


class InvalidResponseError(VoiceNotesError):
    """Raised when a provider answers 2xx with an unusable body."""

    def __init__(self, detail: str = "Invalid response from provider") -> None:
        super().__init__(detail=detail, code="INVALID_RESPONSE", status_code=502)


class NetworkError(VoiceNotesError):
    """Raised for transport failures and non-retryable HTTP errors.

    The underlying failure is kept on ``cause`` (and chained as
    ``__cause__`` by the raiser).
    """

    def __init__(self, cause: BaseException | str | None = None) -> None:
        self.cause = cause
        detail = f"Network error: {cause}" if cause else "Network error"
        super().__init__(detail=detail, code="NETWORK_ERROR", status_code=502)


class OperationCancelledError(VoiceNotesError):
    """Raised at a suspension point once the cancellation token fires."""

    def __init__(self, detail: str = "Operation was cancelled") -> None:
        super().__init__(detail=detail, code="CANCELLED", status_code=409)


# ---------------------------------------------------------------------------
# Provider transport
# ---------------------------------------------------------------------------


class ProviderHTTPError(VoiceNotesError):
    """A provider replied with a non-2xx status.

    Raised by the LLM / STT client layer and consumed by the retry policy,
    which classifies it and translates it into one of the taxonomy errors
    above. It never escapes a provider.
    """

    def __init__(self, status_code: int, detail: str = "", provider: str = "") -> None:
        self.http_status = status_code
        self.provider = provider
        message = detail or f"HTTP {status_code}"
        if provider:
            message = f"{provider}: {message}"
        super().__init__(detail=message, code="PROVIDER_HTTP_ERROR", status_code=502)


# ---------------------------------------------------------------------------
# Registry / configuration
# ---------------------------------------------------------------------------


class OperationNotFoundError(VoiceNotesError):
    """Raised when an operation ID is not tracked by the registry."""

    def __init__(self, operation_id) -> None:
        super().__init__(
            detail=f"Operation not found: {operation_id}",
            code="OPERATION_NOT_FOUND",
            status_code=404,
        )


class UnknownProviderError(VoiceNotesError):
    """Raised when a provider identifier has no registered implementation."""

    def __init__(self, provider: str) -> None:
        super().__init__(
            detail=f"Unknown provider: {provider}",
            code="UNKNOWN_PROVIDER",
            status_code=400,
        )
