"""Audio file utilities backed by pydub (ffmpeg).

Measures duration, re-encodes oversized uploads to a compact speech format
and exports time windows as standalone files for chunked transcription.
All methods are blocking; callers run them via ``asyncio.to_thread()``.
"""

import logging
import os
import tempfile
from pathlib import Path

from pydub import AudioSegment
from pydub.utils import mediainfo

logger = logging.getLogger(__name__)


class AudioProcessor:
    """Handles audio decoding, compression and window export.

    Compressed and exported files are written to fresh temporary files; the
    caller owns them and must delete them (see ``discard``).
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        bitrate: str = "32k",
        export_format: str = "ipod",
        suffix: str = ".m4a",
    ) -> None:
        """Initialize the audio processor.

        Args:
            sample_rate: Output sample rate in Hz (default: 16 kHz, enough for speech).
            channels: Output channel count (1 = mono).
            bitrate: Output AAC bitrate passed to ffmpeg.
            export_format: ffmpeg muxer name ("ipod" writes an .m4a container).
            suffix: File extension of exported files.
        """
        self.sample_rate = sample_rate
        self.channels = channels
        self.bitrate = bitrate
        self.export_format = export_format
        self.suffix = suffix

    def _load(self, path: str | Path) -> AudioSegment:
        return AudioSegment.from_file(str(path))

    def _export(self, audio: AudioSegment) -> str:
        fd, out_path = tempfile.mkstemp(prefix="voicenotes-", suffix=self.suffix)
        os.close(fd)
        try:
            audio.set_channels(self.channels).set_frame_rate(self.sample_rate).export(
                out_path,
                format=self.export_format,
                codec="aac",
                bitrate=self.bitrate,
            )
        except Exception:
            self.discard(out_path)
            raise
        return out_path

    def duration_seconds(self, path: str | Path) -> float:
        """Return the duration of an audio file in seconds.

        Reads the container header with ffprobe; only files whose header
        carries no duration are decoded.
        """
        try:
            return float(mediainfo(str(path))["duration"])
        except (KeyError, ValueError):
            logger.debug("No duration in header of %s; decoding", path)
            return len(self._load(path)) / 1000.0

    def compress(self, path: str | Path) -> str | None:
        """Re-encode ``path`` to mono 16 kHz low-bitrate AAC.

        Returns:
            Path of the compressed temporary file, or None if the file could
            not be decoded or encoded.
        """
        try:
            out_path = self._export(self._load(path))
        except Exception as exc:
            logger.warning("Audio compression failed for %s: %s", path, exc)
            return None

        logger.info(
            "Compressed %s: %d -> %d bytes",
            path,
            os.path.getsize(path),
            os.path.getsize(out_path),
        )
        return out_path

    def export_window(self, path: str | Path, start: float, end: float) -> str:
        """Export ``[start, end)`` seconds of ``path`` as an independent file.

        Returns:
            Path of the exported temporary file.
        """
        window = AudioSegment.from_file(str(path), start_second=start, duration=end - start)
        return self._export(window)

    @staticmethod
    def discard(path: str | Path | None) -> None:
        """Delete a temporary file if it exists."""
        if path is None:
            return
        try:
            Path(path).unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Failed to remove temporary file %s: %s", path, exc)
