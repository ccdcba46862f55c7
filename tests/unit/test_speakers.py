"""Unit tests for heuristic speaker attribution."""

import pytest

from voicenotes.core.models import TranscriptSegment
from voicenotes.services.transcription.speakers import (
    PauseHeuristic,
    PositionHeuristic,
    SpeakerLabeler,
    format_segments,
)


def _seg(text, start, end):
    return TranscriptSegment(text=text, start=start, end=end)


class TestPauseHeuristic:
    def test_long_pause_switches(self):
        assert PauseHeuristic().is_change(2.5, "Fine.", "Then we go.")

    def test_short_gap_keeps_speaker(self):
        assert not PauseHeuristic().is_change(0.3, "Is it done?", "Yes it is.")

    def test_question_then_medium_pause_switches(self):
        assert PauseHeuristic().is_change(1.5, "Is it done?", "It is.")

    def test_response_starter_then_medium_pause_switches(self):
        assert PauseHeuristic().is_change(1.5, "We shipped it.", "Okay, good.")

    def test_medium_pause_without_cue_keeps_speaker(self):
        assert not PauseHeuristic().is_change(1.5, "We shipped it.", "Then we tested.")


class TestSpeakerLabeler:
    def test_labels_alternate_on_pauses(self):
        segments = [
            _seg("How was the trip?", 0.0, 2.0),
            _seg("Great, thanks.", 3.5, 5.0),
            _seg("We saw the coast.", 5.2, 7.0),
            _seg("Nice.", 10.0, 11.0),
        ]
        labelled = SpeakerLabeler().label(segments)
        assert [s.speaker for s in labelled] == [1, 2, 2, 1]

    def test_blank_segments_dropped(self):
        labelled = SpeakerLabeler().label([_seg("  ", 0, 1), _seg("Hello.", 1, 2)])
        assert [s.text for s in labelled] == ["Hello."]

    def test_offset_and_state_carry_across_chunks(self):
        labeler = SpeakerLabeler()
        first = labeler.label([_seg("Right.", 0.0, 479.5)])
        second = labeler.label([_seg("Next part.", 0.2, 4.0)], offset=480.0)

        assert second[0].start == pytest.approx(480.2)
        # 0.7 s gap across the boundary: same speaker
        assert second[0].speaker == first[0].speaker

    def test_position_heuristic(self):
        segments = [_seg(f"s{i}", i, i + 0.5) for i in range(7)]
        labelled = SpeakerLabeler(PositionHeuristic(group=3)).label(segments)
        assert [s.speaker for s in labelled] == [1, 1, 1, 2, 2, 2, 1]


class TestFormatSegments:
    def test_groups_consecutive_segments(self):
        segments = [
            TranscriptSegment(text="Hi.", start=0, end=1, speaker=1),
            TranscriptSegment(text="How are you?", start=1, end=2, speaker=1),
            TranscriptSegment(text="Fine.", start=4, end=5, speaker=2),
        ]
        assert format_segments(segments) == "Speaker 1: Hi. How are you?\nSpeaker 2: Fine."

    def test_empty(self):
        assert format_segments([]) == ""
