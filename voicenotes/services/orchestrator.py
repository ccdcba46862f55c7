"""Operation registry: the in-process orchestrator for transcription and
summarization jobs.

Each started operation runs as one ``asyncio.Task`` on the registry's event
loop. All state changes happen in registry methods on that loop, so the
operation map has a single writer; progress reported from worker threads is
marshalled back with ``loop.call_soon_threadsafe``.

Operations are immutable snapshots; every transition replaces the entry in
the map. State machine::

    running(p) --pause--> paused(p) --resume--> running(p)
    running / paused --cancel--> cancelled
    running / paused --task result--> completed | failed

Usage::

    registry = OperationRegistry(summary_service)
    op = registry.start_summarization("rec-1", transcript)
    final = await registry.join(op.id)
"""

import asyncio
import logging
import time
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any
from uuid import uuid4

from voicenotes.core.cancellation import CancellationToken
from voicenotes.core.config import get_settings
from voicenotes.core.exceptions import (
    ApiKeyMissingError,
    OperationCancelledError,
    OperationNotFoundError,
    VoiceNotesError,
)
from voicenotes.core.models import (
    ErrorResponse,
    OperationResponse,
    OperationState,
    OperationType,
    ProviderType,
    SummaryLength,
    SummaryMode,
    SummaryResult,
    TranscriptionResult,
)
from voicenotes.services.background import BackgroundExecution, LoggingBackgroundExecution
from voicenotes.services.summarization.fallback import SummaryService
from voicenotes.services.transcription import TranscriptionProvider, create_stt

logger = logging.getLogger(__name__)

OperationListener = Callable[["Operation"], None]


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class Operation:
    """Snapshot of one tracked unit of work."""

    recording_id: str
    type: OperationType
    id: str = field(default_factory=lambda: str(uuid4()))
    state: OperationState = OperationState.running
    progress: float = 0.0
    result: TranscriptionResult | SummaryResult | None = None
    error: VoiceNotesError | None = None
    cancel_token: CancellationToken = field(default_factory=CancellationToken)
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    last_activity: float = field(default_factory=time.monotonic)

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    def to_response(self) -> OperationResponse:
        """Convert to the API read model."""
        error = None
        if self.error is not None:
            error = ErrorResponse(
                detail=self.error.detail,
                code=self.error.code,
                timestamp=self.error.timestamp,
            )
        return OperationResponse(
            id=self.id,
            recording_id=self.recording_id,
            type=self.type,
            state=self.state,
            progress=self.progress,
            transcript=self.result if isinstance(self.result, TranscriptionResult) else None,
            summary=self.result if isinstance(self.result, SummaryResult) else None,
            error=error,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


@dataclass(frozen=True)
class SweepResult:
    """Outcome of ``OperationRegistry.sweep``."""

    removed: int
    dormant: list[str]


class OperationRegistry:
    """Creates, tracks, pauses, resumes, cancels and evicts operations.

    All public methods must be called from the event loop the registry runs
    on; ``start_*`` need a running loop.

    Args:
        summary_service: Fallback-chain summarizer used by summarizations.
        cloud_transcriber: Cloud STT provider. Defaults to the OpenAI Whisper
            provider when an OpenAI key is configured; without one, cloud
            transcriptions fail with ``ApiKeyMissingError``.
        local_transcriber: On-device STT provider, created on first use.
        background: Extended-execution collaborator bracketing each task.
        settings: Optional Settings instance (defaults to get_settings()).
    """

    def __init__(
        self,
        summary_service: SummaryService,
        cloud_transcriber: TranscriptionProvider | None = None,
        local_transcriber: TranscriptionProvider | None = None,
        background: BackgroundExecution | None = None,
        settings=None,
    ) -> None:
        self._settings = settings or get_settings()
        self._summary = summary_service
        self._background = background or LoggingBackgroundExecution()
        self._local = local_transcriber
        self._cloud = cloud_transcriber
        if self._cloud is None and (
            self._settings.openai_api_key or self._settings.openai_app_key
        ):
            self._cloud = create_stt("openai", settings=self._settings)
        if self._cloud is None:
            logger.warning("Cloud transcription unavailable: no OpenAI API key configured")

        self._operations: dict[str, Operation] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._evictions: dict[str, asyncio.TimerHandle] = {}
        self._listeners: list[OperationListener] = []
        self._loop: asyncio.AbstractEventLoop | None = None

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------

    @property
    def summary_service(self) -> SummaryService:
        return self._summary

    @property
    def operations(self) -> MappingProxyType:
        """Live read-only mapping of operation id to current snapshot."""
        return MappingProxyType(self._operations)

    def get(self, operation_id: str) -> Operation | None:
        return self._operations.get(operation_id)

    def require(self, operation_id: str) -> Operation:
        operation = self._operations.get(operation_id)
        if operation is None:
            raise OperationNotFoundError(operation_id)
        return operation

    def subscribe(self, listener: OperationListener) -> Callable[[], None]:
        """Call ``listener`` with the new snapshot after every change.

        Returns:
            A function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, operation: Operation) -> None:
        for listener in list(self._listeners):
            try:
                listener(operation)
            except Exception:
                logger.exception("Operation listener failed for %s", operation.id)

    def _store(self, operation: Operation) -> Operation:
        self._operations[operation.id] = operation
        self._notify(operation)
        return operation

    def _transition(self, operation: Operation, **changes: Any) -> Operation:
        updated = replace(operation, updated_at=_now(), **changes)
        self._store(updated)
        if updated.is_terminal:
            self._schedule_eviction(updated.id)
        return updated

    # ------------------------------------------------------------------
    # Starting work
    # ------------------------------------------------------------------

    def _find_active(self, recording_id: str, op_type: OperationType) -> Operation | None:
        """Return the live operation for (recording, type), evicting finished ones."""
        active = None
        for operation in list(self._operations.values()):
            if operation.recording_id != recording_id or operation.type is not op_type:
                continue
            if operation.is_terminal:
                self._evict(operation.id, force=True)
            else:
                active = operation
        return active

    def _spawn(
        self,
        operation: Operation,
        work: Callable[[str], Coroutine[Any, Any, TranscriptionResult | SummaryResult]],
    ) -> Operation:
        self._loop = asyncio.get_running_loop()
        self._store(operation)
        handle = self._background.begin(f"{operation.type.value}-{operation.recording_id}")
        task = self._loop.create_task(
            self._execute(operation.id, work, handle),
            name=f"{operation.type.value}-{operation.id}",
        )
        self._tasks[operation.id] = task
        task.add_done_callback(lambda _t, op_id=operation.id: self._tasks.pop(op_id, None))
        logger.info(
            "Started %s operation %s for recording %s",
            operation.type,
            operation.id,
            operation.recording_id,
        )
        return operation

    def start_transcription(
        self,
        recording_id: str,
        audio_path: str,
        language_hint: str | None = None,
    ) -> Operation:
        """Start (or return the already running) transcription of a recording."""
        existing = self._find_active(recording_id, OperationType.transcription)
        if existing is not None:
            logger.info("Transcription already %s for recording %s", existing.state, recording_id)
            return existing

        async def work(op_id: str) -> TranscriptionResult:
            provider = self._select_transcriber()
            return await provider.transcribe(
                audio_path,
                language_hint=language_hint,
                on_device_preferred=self._settings.use_local_transcription,
                progress=self._progress_callback(op_id),
                cancel_token=self._task_token(op_id),
            )

        return self._spawn(Operation(recording_id, OperationType.transcription), work)

    def start_summarization(
        self,
        recording_id: str,
        transcript: str,
        length: SummaryLength | None = None,
        provider_override: ProviderType | None = None,
        mode: SummaryMode | None = None,
    ) -> Operation:
        """Start (or return the already running) summarization of a recording."""
        existing = self._find_active(recording_id, OperationType.summarization)
        if existing is not None:
            logger.info("Summarization already %s for recording %s", existing.state, recording_id)
            return existing

        async def work(op_id: str) -> SummaryResult:
            return await self._summary.summarize(
                transcript,
                length=length,
                provider_override=provider_override,
                progress=self._progress_callback(op_id),
                cancel_token=self._task_token(op_id),
                mode=mode,
            )

        return self._spawn(Operation(recording_id, OperationType.summarization), work)

    def _select_transcriber(self) -> TranscriptionProvider:
        if self._settings.use_local_transcription:
            if self._local is None:
                self._local = create_stt("local", settings=self._settings)
            return self._local
        if self._cloud is None:
            raise ApiKeyMissingError("openai")
        return self._cloud

    def _task_token(self, operation_id: str) -> CancellationToken:
        """Token that follows the operation's current token.

        An operation no longer in the map counts as cancelled.
        """

        def current() -> CancellationToken:
            operation = self._operations.get(operation_id)
            return operation.cancel_token if operation else CancellationToken.cancelled()

        return CancellationToken.linked(current)

    def _progress_callback(self, operation_id: str) -> Callable[[float], None]:
        loop = self._loop

        def report(value: float) -> None:
            try:
                running = asyncio.get_running_loop()
            except RuntimeError:
                running = None
            if running is loop:
                self._update_progress(operation_id, value)
            else:
                loop.call_soon_threadsafe(self._update_progress, operation_id, value)

        return report

    async def _execute(
        self,
        operation_id: str,
        work: Callable[[str], Coroutine[Any, Any, TranscriptionResult | SummaryResult]],
        handle: str,
    ) -> None:
        try:
            result = await work(operation_id)
        except OperationCancelledError:
            logger.info("Operation %s observed cancellation", operation_id)
            self._finish(operation_id, OperationState.cancelled)
        except VoiceNotesError as exc:
            logger.error("Operation %s failed: %s", operation_id, exc.detail)
            self._finish(operation_id, OperationState.failed, error=exc)
        except Exception as exc:
            logger.exception("Operation %s crashed", operation_id)
            self._finish(operation_id, OperationState.failed, error=VoiceNotesError(str(exc)))
        else:
            self._finish(operation_id, OperationState.completed, result=result)
        finally:
            self._background.end(handle)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _finish(self, operation_id: str, state: OperationState, **changes: Any) -> None:
        """Terminal transition owned by the running task.

        No-op when the operation was already cancelled or evicted.
        """
        operation = self._operations.get(operation_id)
        if operation is None or operation.is_terminal:
            return
        if state is OperationState.completed:
            changes.setdefault("progress", 1.0)
        self._transition(operation, state=state, **changes)
        logger.info("Operation %s %s", operation_id, state)

    def _update_progress(self, operation_id: str, value: float) -> None:
        operation = self._operations.get(operation_id)
        if operation is None or operation.is_terminal:
            return
        # Paused stays paused; only the frozen value moves
        self._transition(
            operation,
            progress=min(max(float(value), 0.0), 1.0),
            last_activity=time.monotonic(),
        )

    def pause(self, operation_id: str) -> Operation:
        """Freeze a running operation's progress. No-op in any other state."""
        operation = self.require(operation_id)
        if operation.state is not OperationState.running:
            return operation
        logger.info("Operation %s paused at %d%%", operation_id, operation.progress * 100)
        return self._transition(operation, state=OperationState.paused)

    def resume(self, operation_id: str) -> Operation:
        """Resume a paused operation from its frozen progress. No-op otherwise."""
        operation = self.require(operation_id)
        if operation.state is not OperationState.paused:
            return operation
        logger.info("Operation %s resumed from %d%%", operation_id, operation.progress * 100)
        return self._transition(operation, state=OperationState.running)

    def cancel(self, operation_id: str) -> Operation:
        """Cancel immediately; the running task observes it at its next check."""
        operation = self.require(operation_id)
        if operation.is_terminal:
            return operation
        logger.info("Operation %s cancelled", operation_id)
        return self._transition(
            operation,
            state=OperationState.cancelled,
            cancel_token=CancellationToken.cancelled(),
        )

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    def _schedule_eviction(self, operation_id: str) -> None:
        if operation_id in self._evictions or self._loop is None:
            return
        self._evictions[operation_id] = self._loop.call_later(
            self._settings.operation_cleanup_delay, self._evict, operation_id
        )

    def _evict(self, operation_id: str, force: bool = False) -> None:
        timer = self._evictions.pop(operation_id, None)
        if timer is not None:
            timer.cancel()
        task = self._tasks.get(operation_id)
        if not force and task is not None and not task.done():
            # Keep the final state readable until the task has exited
            task.add_done_callback(lambda _t: self._schedule_eviction(operation_id))
            return
        operation = self._operations.pop(operation_id, None)
        if operation is not None:
            logger.debug("Evicted %s operation %s", operation.state, operation_id)

    def cleanup_completed_operations(self) -> int:
        """Remove every terminal operation now. Returns how many were removed."""
        finished = [op_id for op_id, op in self._operations.items() if op.is_terminal]
        for op_id in finished:
            self._evict(op_id, force=True)
        if finished:
            logger.info("Cleaned up %d completed operations", len(finished))
        return len(finished)

    def sweep(self) -> SweepResult:
        """Evict terminal operations and report long-dormant running ones.

        A running operation is dormant when it has reported no progress for
        ``operation_dormant_after_seconds``. Restarting it is left to the
        caller's scheduler.
        """
        removed = self.cleanup_completed_operations()
        cutoff = time.monotonic() - self._settings.operation_dormant_after_seconds
        dormant = [
            op.id
            for op in self._operations.values()
            if op.state is OperationState.running and op.last_activity < cutoff
        ]
        if dormant:
            logger.warning("%d dormant operations need restart: %s", len(dormant), dormant)
        return SweepResult(removed=removed, dormant=dormant)

    async def join(self, operation_id: str) -> Operation:
        """Wait for an operation's task to exit and return its final snapshot."""
        task = self._tasks.get(operation_id)
        if task is not None:
            await asyncio.shield(task)
        return self.require(operation_id)

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Cancel every live operation and wait for the tasks to exit."""
        for operation in list(self._operations.values()):
            if not operation.is_terminal:
                self.cancel(operation.id)

        tasks = list(self._tasks.values())
        if tasks:
            _done, pending = await asyncio.wait(tasks, timeout=timeout)
            for task in pending:
                logger.warning("Task %s ignored cancellation; interrupting", task.get_name())
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        for timer in self._evictions.values():
            timer.cancel()
        self._evictions.clear()
        logger.info("Operation registry shut down")
