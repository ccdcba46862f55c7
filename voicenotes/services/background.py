"""
Background-execution collaborator and pending-work discovery.

Every operation task is bracketed by ``begin``/``end`` so the host can keep
the process alive past its normal foreground limits. The default
implementation only tracks and logs the open windows.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING
from uuid import uuid4

from voicenotes.services.storage.recordings import RecordingsStore

if TYPE_CHECKING:
    from voicenotes.services.orchestrator import Operation, OperationRegistry

logger = logging.getLogger(__name__)


class BackgroundExecution(ABC):
    """Opens and closes extended-execution windows."""

    @abstractmethod
    def begin(self, name: str) -> str:
        """Open a window and return its handle."""

    @abstractmethod
    def end(self, handle: str) -> None:
        """Close a window opened by ``begin``. Unknown handles are ignored."""


class LoggingBackgroundExecution(BackgroundExecution):
    """Tracks open windows in memory and logs their lifetime."""

    def __init__(self) -> None:
        self._active: dict[str, str] = {}

    @property
    def active(self) -> dict[str, str]:
        """Open windows, handle -> name."""
        return dict(self._active)

    def begin(self, name: str) -> str:
        handle = uuid4().hex
        self._active[handle] = name
        logger.debug("Background window %s opened for %s", handle, name)
        return handle

    def end(self, handle: str) -> None:
        name = self._active.pop(handle, None)
        if name is not None:
            logger.debug("Background window %s closed for %s", handle, name)


async def process_pending_recordings(
    registry: "OperationRegistry",
    store: RecordingsStore,
    limit: int = 3,
    delay: float = 1.0,
) -> list["Operation"]:
    """Start processing for recordings that still need work.

    A recording without a transcript gets a transcription; one with a
    transcript but no summary gets a summarization. At most ``limit``
    recordings are handled, ``delay`` seconds apart.

    Returns:
        The operations started (or already running, by dedup).
    """
    pending = [
        r for r in store.list_recordings() if r.needs_transcription or r.needs_summary
    ]
    logger.info("Found %d recordings needing processing", len(pending))

    started: list["Operation"] = []
    for i, record in enumerate(pending[:limit]):
        if i and delay > 0:
            await asyncio.sleep(delay)
        if record.needs_transcription:
            operation = registry.start_transcription(record.id, record.audio_path)
        else:
            operation = registry.start_summarization(record.id, record.transcript)
        logger.info("Started %s for recording %s", operation.type, record.id)
        started.append(operation)
    return started
