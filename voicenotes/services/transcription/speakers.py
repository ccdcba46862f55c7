"""
Best-effort speaker attribution for timed transcript segments.

Whisper returns timed segments without speaker information. A pluggable
heuristic decides, segment by segment, whether the speaker changed; this is
a guess from pauses and conversational cues, not acoustic diarization.
"""

import logging
from abc import ABC, abstractmethod

from voicenotes.core.models import TranscriptSegment

logger = logging.getLogger(__name__)

RESPONSE_STARTERS: tuple[str, ...] = (
    "yes", "no", "yeah", "sure", "okay", "ok", "right", "exactly",
    "well", "so", "actually", "i think", "i mean", "maybe", "perhaps",
    # Dutch
    "ja", "nee", "nou", "oke", "goed", "precies", "dus", "eigenlijk",
)


class SpeakerHeuristic(ABC):
    """Decides the speaker number of each segment in sequence."""

    @abstractmethod
    def next_speaker(
        self,
        index: int,
        pause: float,
        previous_text: str | None,
        text: str,
        current: int,
    ) -> int:
        """Return the speaker for segment ``index``.

        Args:
            index: Position of the segment across the whole recording.
            pause: Seconds of silence since the previous segment ended.
            previous_text: Text of the previous segment, if any.
            text: Text of this segment (stripped).
            current: Speaker of the previous segment (1 before the first one).
        """


class PauseHeuristic(SpeakerHeuristic):
    """Toggles between two speakers on long pauses or question/answer cues.

    A pause longer than ``long_pause`` always switches speaker. A pause
    longer than ``short_pause`` switches when the previous segment asked a
    question or this one opens like a reply.
    """

    def __init__(
        self,
        long_pause: float = 2.0,
        short_pause: float = 1.0,
        response_starters: tuple[str, ...] = RESPONSE_STARTERS,
    ) -> None:
        self.long_pause = long_pause
        self.short_pause = short_pause
        self.response_starters = response_starters

    def is_change(self, pause: float, previous_text: str | None, text: str) -> bool:
        if pause > self.long_pause:
            return True
        if pause > self.short_pause:
            asked = (previous_text or "").strip().endswith("?")
            replies = text.lower().startswith(self.response_starters)
            return asked or replies
        return False

    def next_speaker(self, index, pause, previous_text, text, current):
        if index == 0:
            return current
        if self.is_change(pause, previous_text, text):
            return 2 if current == 1 else 1
        return current


class PositionHeuristic(SpeakerHeuristic):
    """Alternates speakers every ``group`` segments, ignoring timing."""

    def __init__(self, group: int = 3) -> None:
        self.group = group

    def next_speaker(self, index, pause, previous_text, text, current):
        return (index // self.group) % 2 + 1


class SpeakerLabeler:
    """Applies a heuristic across consecutive chunks of one recording.

    State (speaker, segment count, last end time) carries over between calls
    to ``label`` so labels stay continuous across chunk boundaries.
    """

    def __init__(self, heuristic: SpeakerHeuristic | None = None) -> None:
        self.heuristic = heuristic or PauseHeuristic()
        self._index = 0
        self._speaker = 1
        self._last_end = 0.0
        self._previous_text: str | None = None

    def label(
        self, segments: list[TranscriptSegment], offset: float = 0.0
    ) -> list[TranscriptSegment]:
        """Return copies of ``segments`` shifted by ``offset`` with speakers set.

        Segments with blank text are dropped.
        """
        labelled: list[TranscriptSegment] = []
        for seg in segments:
            text = seg.text.strip()
            if not text:
                continue
            start = seg.start + offset
            end = seg.end + offset
            self._speaker = self.heuristic.next_speaker(
                self._index,
                start - self._last_end,
                self._previous_text,
                text,
                self._speaker,
            )
            labelled.append(
                TranscriptSegment(text=text, start=start, end=end, speaker=self._speaker)
            )
            self._index += 1
            self._last_end = end
            self._previous_text = text
        return labelled


def format_segments(segments: list[TranscriptSegment]) -> str:
    """Render labelled segments as ``Speaker N: ...`` lines.

    A new line starts whenever the speaker changes; consecutive segments of
    the same speaker are joined with spaces.
    """
    lines: list[str] = []
    current: int | None = None
    for seg in segments:
        if not lines or seg.speaker != current:
            current = seg.speaker
            lines.append(f"Speaker {current}: {seg.text}")
        else:
            lines[-1] = f"{lines[-1]} {seg.text}"
    return "\n".join(lines)
