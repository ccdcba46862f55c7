"""
Recordings store interface.

Persistence of recordings is owned by the host application; the processing
core only reads ``RecordingRecord`` views to discover pending work.
"""

from abc import ABC, abstractmethod

from pydantic import BaseModel


class RecordingRecord(BaseModel):
    """What the core needs to know about one recording."""

    id: str
    audio_path: str
    transcript: str | None = None
    summary: str | None = None

    @property
    def needs_transcription(self) -> bool:
        return not self.transcript

    @property
    def needs_summary(self) -> bool:
        return bool(self.transcript) and not self.summary


class RecordingsStore(ABC):
    """Read access to recordings."""

    @abstractmethod
    def list_recordings(self) -> list[RecordingRecord]:
        """Return all recordings, oldest first."""

    @abstractmethod
    def get(self, recording_id: str) -> RecordingRecord | None:
        """Return one recording, or None if unknown."""


class InMemoryRecordingsStore(RecordingsStore):
    """Dictionary-backed store preserving insertion order."""

    def __init__(self, recordings: list[RecordingRecord] | None = None) -> None:
        self._recordings: dict[str, RecordingRecord] = {r.id: r for r in recordings or []}

    def add(self, record: RecordingRecord) -> None:
        self._recordings[record.id] = record

    def list_recordings(self) -> list[RecordingRecord]:
        return list(self._recordings.values())

    def get(self, recording_id: str) -> RecordingRecord | None:
        return self._recordings.get(recording_id)
