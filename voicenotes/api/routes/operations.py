"""
Operation REST endpoints.

Thin adapter over ``OperationRegistry``: start transcriptions and
summarizations, control running operations, and read their state.
"""

from fastapi import APIRouter, Depends

from voicenotes.api.dependencies import get_registry
from voicenotes.core.models import (
    OperationResponse,
    SummarizationRequest,
    SweepResponse,
    TranscriptionRequest,
)
from voicenotes.services.orchestrator import OperationRegistry

router = APIRouter(prefix="/operations", tags=["operations"])


@router.post("/transcriptions", response_model=OperationResponse, status_code=202)
async def start_transcription(
    body: TranscriptionRequest,
    registry: OperationRegistry = Depends(get_registry),
):
    """Start transcribing a recording, or return the one already running."""
    operation = registry.start_transcription(
        body.recording_id, body.audio_path, language_hint=body.language_hint
    )
    return operation.to_response()


@router.post("/summaries", response_model=OperationResponse, status_code=202)
async def start_summarization(
    body: SummarizationRequest,
    registry: OperationRegistry = Depends(get_registry),
):
    """Start summarizing a transcript, or return the one already running."""
    operation = registry.start_summarization(
        body.recording_id,
        body.transcript,
        length=body.length,
        provider_override=body.provider,
        mode=body.mode,
    )
    return operation.to_response()


@router.get("", response_model=list[OperationResponse])
async def list_operations(registry: OperationRegistry = Depends(get_registry)):
    return [op.to_response() for op in registry.operations.values()]


@router.post("/sweep", response_model=SweepResponse)
async def sweep_operations(registry: OperationRegistry = Depends(get_registry)):
    """Evict finished operations and list dormant ones needing a restart."""
    result = registry.sweep()
    return SweepResponse(removed=result.removed, dormant=result.dormant)


@router.get("/{operation_id}", response_model=OperationResponse)
async def get_operation(operation_id: str, registry: OperationRegistry = Depends(get_registry)):
    return registry.require(operation_id).to_response()


@router.post("/{operation_id}/pause", response_model=OperationResponse)
async def pause_operation(operation_id: str, registry: OperationRegistry = Depends(get_registry)):
    return registry.pause(operation_id).to_response()


@router.post("/{operation_id}/resume", response_model=OperationResponse)
async def resume_operation(operation_id: str, registry: OperationRegistry = Depends(get_registry)):
    return registry.resume(operation_id).to_response()


@router.post("/{operation_id}/cancel", response_model=OperationResponse)
async def cancel_operation(operation_id: str, registry: OperationRegistry = Depends(get_registry)):
    return registry.cancel(operation_id).to_response()
