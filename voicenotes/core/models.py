"""
Pydantic v2 models and enums shared by the processing core and the API layer.

Enums: operation type/state, summary length/mode, provider identifiers
Service results: transcription, summary, telemetry
API: request / response envelopes for the operations endpoints
"""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """GET /health response."""

    status: str = "ok"
    version: str = "0.1.0"
    timestamp: datetime


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


class OperationType(StrEnum):
    """Kind of work an operation performs."""

    transcription = "transcription"
    summarization = "summarization"


class OperationState(StrEnum):
    """Lifecycle states of an operation.

    ``running`` and ``paused`` carry a progress value; the other three are
    terminal.
    """

    running = "running"
    paused = "paused"
    completed = "completed"
    failed = "failed"
    cancelled = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (OperationState.completed, OperationState.failed, OperationState.cancelled)


# ---------------------------------------------------------------------------
# Summary options
# ---------------------------------------------------------------------------


class SummaryLength(StrEnum):
    """Requested level of detail for a summary."""

    brief = "brief"
    standard = "standard"
    detailed = "detailed"

    @property
    def max_tokens(self) -> int:
        """Output token cap sent to the provider."""
        return {"brief": 300, "standard": 800, "detailed": 1500}[self.value]

    @property
    def extract_sentences(self) -> int:
        """Number of sentences kept by the local extractive fallback."""
        return {"brief": 3, "standard": 6, "detailed": 10}[self.value]

    @property
    def instruction(self) -> str:
        return {
            "brief": (
                "Keep it very concise and brief. Focus only on the most essential points. "
                "Use short sentences and minimal detail."
            ),
            "standard": (
                "Provide a balanced level of detail. Include key points with supporting "
                "information where relevant."
            ),
            "detailed": (
                "Provide comprehensive detail. Include context, nuances, examples, and "
                "thorough explanations of all important points discussed."
            ),
        }[self.value]


class SummaryMode(StrEnum):
    """Conversation type used to pick the summary template."""

    personal = "personal"
    meeting = "meeting"
    tech_team = "tech_team"
    planning = "planning"
    brainstorm = "brainstorm"
    lecture = "lecture"
    interview = "interview"


class ProviderType(StrEnum):
    """Summarization provider identifiers, in registry (fallback) order."""

    app_default = "app_default"
    openai = "openai"
    anthropic = "anthropic"
    gemini = "gemini"
    ollama = "ollama"

    @property
    def display_name(self) -> str:
        return {
            "app_default": "App Default",
            "openai": "OpenAI",
            "anthropic": "Anthropic/Claude",
            "gemini": "Google Gemini",
            "ollama": "Ollama (local)",
        }[self.value]

    @property
    def requires_api_key(self) -> bool:
        """App default runs on the app key and Ollama runs locally."""
        return self not in (ProviderType.app_default, ProviderType.ollama)


class FallbackUsage(StrEnum):
    """Which step of the fallback chain produced a summary."""

    none = "none"  # The requested provider succeeded
    provider = "provider"  # Another remote provider succeeded
    local = "local"  # Local extractive fallback


# ---------------------------------------------------------------------------
# Transcription
# ---------------------------------------------------------------------------


class TranscriptSegment(BaseModel):
    """A timed transcript segment, optionally attributed to a speaker."""

    text: str
    start: float
    end: float
    speaker: int | None = None


class TranscriptionResult(BaseModel):
    """Final transcript of one audio file (all chunks stitched together)."""

    text: str
    segments: list[TranscriptSegment] = Field(default_factory=list)
    language: str = "unknown"
    duration: float = 0.0
    chunk_count: int = 1


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


class SummaryResult(BaseModel):
    """Summary returned by a provider: prettified text plus raw model output."""

    clean: str
    raw: str | None = None


class SummaryTelemetry(BaseModel):
    """One record sent to the telemetry collaborator per summary request."""

    provider_id: str
    requested_provider: str
    success: bool
    used_fallback: FallbackUsage = FallbackUsage.none
    elapsed_ms: int = 0
    input_length: int = 0
    output_length: int = 0
    timestamp: datetime


class UsageStats(BaseModel):
    """Aggregated telemetry over the retained history."""

    total_requests: int = 0
    successful_requests: int = 0
    fallbacks_used: int = 0
    local_fallbacks_used: int = 0
    average_elapsed_ms: int = 0
    success_rate: float = 0.0
    fallback_rate: float = 0.0


# ---------------------------------------------------------------------------
# API requests / responses
# ---------------------------------------------------------------------------


class TranscriptionRequest(BaseModel):
    """POST /operations/transcriptions request body."""

    recording_id: str
    audio_path: str
    language_hint: str | None = None


class SummarizationRequest(BaseModel):
    """POST /operations/summaries request body."""

    recording_id: str
    transcript: str
    length: SummaryLength | None = None
    provider: ProviderType | None = None
    mode: SummaryMode | None = None


class ErrorResponse(BaseModel):
    """Standard error envelope returned by the API."""

    detail: str
    code: str
    timestamp: str


class OperationResponse(BaseModel):
    """Read-only view of one operation for the caller to render."""

    id: str
    recording_id: str
    type: OperationType
    state: OperationState
    progress: float = 0.0
    transcript: TranscriptionResult | None = None
    summary: SummaryResult | None = None
    error: ErrorResponse | None = None
    created_at: datetime
    updated_at: datetime


class ProviderStatusResponse(BaseModel):
    """Configuration status of one summarization provider."""

    provider: ProviderType
    display_name: str
    requires_api_key: bool
    configured: bool
    selected: bool = False


class ValidateKeyRequest(BaseModel):
    """POST /providers/{provider}/validate request body."""

    api_key: str | None = None


class ValidateKeyResponse(BaseModel):
    """Result of a provider key validation."""

    provider: ProviderType
    valid: bool


class SweepResponse(BaseModel):
    """Result of a registry cleanup sweep."""

    removed: int = 0
    dormant: list[str] = Field(default_factory=list)
