"""Local extractive fallback used when every remote provider failed."""

from voicenotes.core.exceptions import EmptyTextError
from voicenotes.core.models import SummaryLength, SummaryResult
from voicenotes.core.utils import split_sentences

LOCAL_EXTRACT_TITLE = "**Summary (Local Extract)**"
LOCAL_EXTRACT_INTRO = (
    "This is a simplified local extract as all AI providers were unavailable:"
)
LOCAL_EXTRACT_NOTE = (
    "*Note: Full AI summarization was unavailable. Please check your provider configuration.*"
)


def local_extract(transcript: str, length: SummaryLength = SummaryLength.standard) -> SummaryResult:
    """Return the first K sentences of ``transcript`` wrapped in a labelled notice.

    K is 3, 6 or 10 for brief, standard and detailed. Cannot fail on
    non-empty input.

    Raises:
        EmptyTextError: If the transcript is blank.
    """
    text = transcript.strip()
    if not text:
        raise EmptyTextError()

    sentences = split_sentences(text)[: length.extract_sentences]
    extract = " ".join(sentences) if sentences else text
    clean = f"{LOCAL_EXTRACT_TITLE}\n\n{LOCAL_EXTRACT_INTRO}\n\n{extract}\n\n{LOCAL_EXTRACT_NOTE}"
    return SummaryResult(clean=clean, raw=None)
