"""OpenAI Whisper API transcription provider.

Uploads audio to the Whisper endpoint with ``verbose_json`` output so that
segment timestamps are available for speaker attribution. Oversized input is
handled in two steps: files over the upload limit are first re-encoded to a
compact speech format; files that are too long, or still too large after
compression, are split into fixed time windows that are transcribed one at a
time and joined in order.
"""

import asyncio
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from openai import APIConnectionError, APIStatusError, APITimeoutError, AsyncOpenAI

from voicenotes.core.cancellation import CancellationToken
from voicenotes.core.config import get_settings
from voicenotes.core.exceptions import (
    ApiKeyMissingError,
    FileTooLargeError,
    InvalidResponseError,
    NotFoundError,
    PermissionDeniedError,
    ProviderHTTPError,
)
from voicenotes.core.models import TranscriptionResult, TranscriptSegment
from voicenotes.services.audio.processor import AudioProcessor
from voicenotes.services.chunking import chunk_progress, needs_audio_chunking, plan_audio_chunks
from voicenotes.services.retry import RetryPolicy
from voicenotes.services.transcription.base import ProgressCallback, TranscriptionProvider
from voicenotes.services.transcription.speakers import (
    SpeakerHeuristic,
    SpeakerLabeler,
    format_segments,
)

logger = logging.getLogger(__name__)


@dataclass
class _Transcript:
    """Parsed ``verbose_json`` reply for one uploaded file."""

    text: str
    segments: list[TranscriptSegment] = field(default_factory=list)
    language: str | None = None
    duration: float | None = None


class OpenAIWhisperSTT(TranscriptionProvider):
    """Speech-to-text provider using the OpenAI Whisper API.

    Args:
        api_key: OpenAI key. Defaults to the user key, then the app key.
        model: Whisper model name (defaults to ``settings.whisper_api_model``).
        settings: Optional Settings instance (defaults to get_settings()).
        processor: Audio helper used for duration, compression and export.
        retry_policy: Retry policy wrapped around every upload.
        speaker_heuristic: Speaker attribution heuristic (pause-based by default).
        client: Pre-built ``AsyncOpenAI`` client, mainly for tests.
    """

    name = "openai_whisper"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        settings=None,
        processor: AudioProcessor | None = None,
        retry_policy: RetryPolicy | None = None,
        speaker_heuristic: SpeakerHeuristic | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._api_key = (
            api_key
            if api_key is not None
            else self._settings.openai_api_key or self._settings.openai_app_key
        )
        self._model = model or self._settings.whisper_api_model
        self._processor = processor or AudioProcessor()
        self._retry = retry_policy or RetryPolicy.from_settings(
            self._settings, too_large_error=FileTooLargeError
        )
        self._speaker_heuristic = speaker_heuristic
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        """Return the API client, creating it on first use."""
        if self._client is None:
            # SDK-level retries are disabled; RetryPolicy owns retrying.
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                timeout=self._settings.transcription_timeout_seconds,
                max_retries=0,
            )
        return self._client

    # ------------------------------------------------------------------
    # Single upload
    # ------------------------------------------------------------------

    async def _request(self, audio_path: str, language: str | None) -> _Transcript:
        """Upload one file and parse the reply.

        SDK exceptions are translated to ``ProviderHTTPError`` /
        ``TimeoutError`` / ``ConnectionError`` so the retry policy can
        classify them.
        """
        kwargs: dict = {"model": self._model, "response_format": "verbose_json"}
        if language:
            kwargs["language"] = language

        try:
            with open(audio_path, "rb") as audio_file:
                response = await self._get_client().audio.transcriptions.create(
                    file=audio_file, **kwargs
                )
        except APITimeoutError as exc:
            raise TimeoutError(f"Whisper API request timed out: {exc}") from exc
        except APIConnectionError as exc:
            raise ConnectionError(f"Failed to connect to Whisper API: {exc}") from exc
        except APIStatusError as exc:
            raise ProviderHTTPError(exc.status_code, str(exc.message), provider="openai") from exc

        return self._parse(response)

    @staticmethod
    def _parse(response) -> _Transcript:
        text = getattr(response, "text", None)
        if not isinstance(text, str):
            raise InvalidResponseError("Whisper API response has no transcript text")

        segments = [
            TranscriptSegment(text=seg.text, start=float(seg.start), end=float(seg.end))
            for seg in getattr(response, "segments", None) or []
        ]
        duration = getattr(response, "duration", None)
        return _Transcript(
            text=text.strip(),
            segments=segments,
            language=getattr(response, "language", None),
            duration=float(duration) if duration is not None else None,
        )

    async def _transcribe_file(
        self,
        audio_path: str,
        language: str | None,
        cancel_token: CancellationToken,
        label: str,
    ) -> _Transcript:
        return await self._retry.run(
            lambda: self._request(audio_path, language),
            cancel_token,
            label=label,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def transcribe(
        self,
        audio_path: str,
        language_hint: str | None = None,
        on_device_preferred: bool = False,
        progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> TranscriptionResult:
        """Transcribe an audio file, compressing or chunking it as needed."""
        token = cancel_token or CancellationToken()
        report = progress or (lambda _value: None)

        path = Path(audio_path)
        if not path.is_file():
            raise NotFoundError(str(path))
        if not os.access(path, os.R_OK):
            raise PermissionDeniedError(f"Cannot read audio file: {path}")
        if not self._api_key:
            raise ApiKeyMissingError("openai")
        token.raise_if_cancelled()

        try:
            duration = await asyncio.to_thread(self._processor.duration_seconds, path)
        except Exception as exc:
            logger.warning("Could not read duration of %s: %s", path, exc)
            duration = 0.0
        token.raise_if_cancelled()

        limit = self._settings.transcription_max_upload_bytes
        threshold = self._settings.audio_chunk_threshold_seconds
        size = path.stat().st_size
        logger.info("Transcribing %s (%.1fs, %d bytes)", path.name, duration, size)

        compressed: str | None = None
        try:
            upload_path = str(path)
            if size > limit and duration <= threshold:
                compressed = await asyncio.to_thread(self._processor.compress, path)
                token.raise_if_cancelled()
                if compressed is not None:
                    upload_path = compressed
                    size = os.path.getsize(compressed)

            if needs_audio_chunking(duration, size, limit, threshold):
                if duration <= 0:
                    raise FileTooLargeError(
                        f"Audio file exceeds {limit} bytes and its duration is unknown"
                    )
                return await self._transcribe_chunked(
                    str(path), duration, language_hint, report, token
                )

            report(0.1)
            transcript = await self._transcribe_file(
                upload_path, language_hint, token, label=f"Whisper upload {path.name}"
            )
            token.raise_if_cancelled()
            report(0.9)

            labelled = SpeakerLabeler(self._speaker_heuristic).label(transcript.segments)
            text = format_segments(labelled) if labelled else transcript.text
            report(1.0)
            return TranscriptionResult(
                text=text,
                segments=labelled,
                language=transcript.language or language_hint or "unknown",
                duration=transcript.duration or duration,
                chunk_count=1,
            )
        finally:
            self._processor.discard(compressed)

    async def _transcribe_chunked(
        self,
        audio_path: str,
        duration: float,
        language: str | None,
        report: ProgressCallback,
        cancel_token: CancellationToken,
    ) -> TranscriptionResult:
        """Transcribe fixed time windows strictly in order and join them."""
        chunks = plan_audio_chunks(duration, self._settings.audio_chunk_seconds)
        total = len(chunks)
        logger.info("Splitting %s into %d chunks", Path(audio_path).name, total)

        labeler = SpeakerLabeler(self._speaker_heuristic)
        texts: list[str] = []
        segments: list[TranscriptSegment] = []
        detected_language: str | None = None

        for chunk in chunks:
            cancel_token.raise_if_cancelled()
            report(chunk_progress(chunk.index, total))

            window: str | None = None
            try:
                window = await asyncio.to_thread(
                    self._processor.export_window, audio_path, chunk.start, chunk.end
                )
                cancel_token.raise_if_cancelled()
                report(chunk_progress(chunk.index, total, within=0.1))
                transcript = await self._transcribe_file(
                    window,
                    language,
                    cancel_token,
                    label=f"Whisper chunk {chunk.index + 1}/{total}",
                )
            finally:
                self._processor.discard(window)
            cancel_token.raise_if_cancelled()

            labelled = labeler.label(transcript.segments, offset=chunk.start)
            segments.extend(labelled)
            text = format_segments(labelled) if labelled else transcript.text
            if text:
                texts.append(text)
            detected_language = detected_language or transcript.language
            report(chunk_progress(chunk.index + 1, total))
            logger.debug("Chunk %d/%d transcribed", chunk.index + 1, total)

        return TranscriptionResult(
            text="\n\n".join(texts),
            segments=segments,
            language=detected_language or language or "unknown",
            duration=duration,
            chunk_count=total,
        )
