"""On-device Whisper STT implementation using faster-whisper.

The WhisperModel is loaded lazily and cached at module level to avoid
repeated initialization overhead. Decoding runs in a worker thread; the
segment generator is consumed there, polling the cancellation token between
segments and reporting progress by segment end time.
"""

import asyncio
import logging
import os
from pathlib import Path

from faster_whisper import WhisperModel

from voicenotes.core.cancellation import CancellationToken
from voicenotes.core.config import get_settings
from voicenotes.core.exceptions import (
    InvalidResponseError,
    NotFoundError,
    OperationCancelledError,
    PermissionDeniedError,
)
from voicenotes.core.models import TranscriptionResult, TranscriptSegment
from voicenotes.services.transcription.base import ProgressCallback, TranscriptionProvider
from voicenotes.services.transcription.speakers import (
    SpeakerHeuristic,
    SpeakerLabeler,
    format_segments,
)

logger = logging.getLogger(__name__)

_model_cache: WhisperModel | None = None


class WhisperSTT(TranscriptionProvider):
    """Speech-to-text provider using faster-whisper (CTranslate2).

    Args:
        model_size: Whisper model size (tiny, base, small, medium, large-v3).
        device: Computation device ("cpu" or "cuda").
        compute_type: CTranslate2 compute type ("int8", "float16", etc.).
        settings: Optional Settings instance (defaults to get_settings()).
        speaker_heuristic: Speaker attribution heuristic (pause-based by default).
    """

    name = "whisper_local"

    def __init__(
        self,
        model_size: str | None = None,
        device: str = "cpu",
        compute_type: str = "int8",
        settings=None,
        speaker_heuristic: SpeakerHeuristic | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._model_size = model_size or self._settings.whisper_model
        self._device = device
        self._compute_type = compute_type
        self._speaker_heuristic = speaker_heuristic

    def _get_model(self) -> WhisperModel:
        """Return the cached WhisperModel, loading it on first use."""
        global _model_cache  # noqa: PLW0603
        if _model_cache is None:
            logger.info(
                "Loading Whisper model: %s (device=%s, compute=%s)",
                self._model_size,
                self._device,
                self._compute_type,
            )
            _model_cache = WhisperModel(
                self._model_size,
                device=self._device,
                compute_type=self._compute_type,
            )
        return _model_cache

    def _run_transcription(
        self,
        audio_path: str,
        language: str | None,
        progress: ProgressCallback,
        cancel_token: CancellationToken,
        beam_size: int = 5,
        vad_filter: bool = True,
    ) -> tuple:
        """Run synchronous transcription (CPU-bound).

        Must be called via asyncio.to_thread(). The segment iterator is
        consumed inside this function to avoid CTranslate2 thread-safety
        issues; each decoded segment is a suspension point.

        Returns:
            Tuple of (list[segment_objects], info_object).
        """
        model = self._get_model()
        segments_iter, info = model.transcribe(
            audio_path,
            language=language,
            beam_size=beam_size,
            vad_filter=vad_filter,
        )
        duration = info.duration or 0.0
        segments = []
        for seg in segments_iter:
            cancel_token.raise_if_cancelled()
            segments.append(seg)
            if duration > 0:
                progress(min(seg.end / duration, 1.0))
        return segments, info

    async def transcribe(
        self,
        audio_path: str,
        language_hint: str | None = None,
        on_device_preferred: bool = True,
        progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> TranscriptionResult:
        """Transcribe an audio file on this machine."""
        token = cancel_token or CancellationToken()
        report = progress or (lambda _value: None)

        path = Path(audio_path)
        if not path.is_file():
            raise NotFoundError(str(path))
        if not os.access(path, os.R_OK):
            raise PermissionDeniedError(f"Cannot read audio file: {path}")
        token.raise_if_cancelled()

        try:
            segments, info = await asyncio.to_thread(
                self._run_transcription,
                str(path),
                language_hint,
                report,
                token,
            )
        except OperationCancelledError:
            raise
        except Exception as exc:
            raise InvalidResponseError(f"Whisper transcription failed: {exc}") from exc
        token.raise_if_cancelled()

        raw = [
            TranscriptSegment(text=seg.text, start=seg.start, end=seg.end)
            for seg in segments
            if seg.text.strip()
        ]
        labelled = SpeakerLabeler(self._speaker_heuristic).label(raw)
        report(1.0)
        return TranscriptionResult(
            text=format_segments(labelled),
            segments=labelled,
            language=info.language or "unknown",
            duration=info.duration or 0.0,
            chunk_count=1,
        )
