"""
Chunking engine for oversized inputs.

Audio is partitioned by time into sequential, non-overlapping windows that are
exported as independent files. Text is partitioned by character count into
overlapping windows so that context spans slice boundaries. Both kinds of
chunk are processed strictly in index order.
"""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class AudioChunk:
    """A time window of an audio file, in seconds."""

    index: int
    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass(frozen=True)
class TextChunk:
    """A character window ``text[start:end]`` of a transcript."""

    index: int
    start: int
    end: int
    text: str


# ---------------------------------------------------------------------------
# Audio
# ---------------------------------------------------------------------------


def needs_audio_chunking(
    duration: float,
    size_bytes: int,
    size_limit: int,
    duration_threshold: float,
) -> bool:
    """Return True when a file must be split before upload.

    ``size_bytes`` should be the size after compression was attempted.
    """
    return duration > duration_threshold or size_bytes > size_limit


def plan_audio_chunks(duration: float, chunk_seconds: float) -> list[AudioChunk]:
    """Partition ``[0, duration)`` into fixed-length windows.

    The last window is shorter when the duration is not a multiple of
    ``chunk_seconds``.

    Raises:
        ValueError: If ``chunk_seconds`` is not positive.
    """
    if chunk_seconds <= 0:
        raise ValueError("chunk_seconds must be positive")
    if duration <= 0:
        return []

    count = math.ceil(duration / chunk_seconds)
    return [
        AudioChunk(
            index=i,
            start=i * chunk_seconds,
            end=min((i + 1) * chunk_seconds, duration),
        )
        for i in range(count)
    ]


def chunk_progress(completed: int, total: int, within: float = 0.0) -> float:
    """Overall progress given ``completed`` finished chunks out of ``total``.

    ``within`` is the 0..1 progress of the chunk currently executing, which is
    linearly interpolated into its share of the whole.
    """
    if total <= 0:
        return 1.0
    within = min(max(within, 0.0), 1.0)
    return min((completed + within) / total, 1.0)


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------


def split_text(text: str, size: int, overlap: int) -> list[TextChunk]:
    """Split ``text`` into windows of ``size`` characters overlapping by ``overlap``.

    Consecutive windows advance by ``size - overlap`` characters and the last
    window ends exactly at ``len(text)``, giving
    ``ceil((len(text) - overlap) / (size - overlap))`` chunks for any text
    longer than ``size``.

    Raises:
        ValueError: If ``overlap`` is negative or not smaller than ``size``.
    """
    if size <= 0 or overlap < 0 or overlap >= size:
        raise ValueError("chunk size must be positive and larger than the overlap")

    length = len(text)
    if length <= size:
        return [TextChunk(index=0, start=0, end=length, text=text)]

    step = size - overlap
    chunks: list[TextChunk] = []
    start = 0
    while True:
        end = min(start + size, length)
        chunks.append(TextChunk(index=len(chunks), start=start, end=end, text=text[start:end]))
        if end == length:
            break
        start += step
    return chunks


def merge_text_chunks(chunks: list[TextChunk]) -> str:
    """Reconstruct the original text, dropping the overlap each chunk repeats."""
    merged = ""
    covered = 0
    for chunk in sorted(chunks, key=lambda c: c.index):
        merged += chunk.text[max(covered - chunk.start, 0):]
        covered = chunk.end
    return merged
