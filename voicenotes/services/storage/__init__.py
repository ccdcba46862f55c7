"""
Storage module - Read access to recordings owned by the host application.
"""

from voicenotes.services.storage.recordings import (
    InMemoryRecordingsStore,
    RecordingRecord,
    RecordingsStore,
)

__all__ = [
    "InMemoryRecordingsStore",
    "RecordingRecord",
    "RecordingsStore",
]
