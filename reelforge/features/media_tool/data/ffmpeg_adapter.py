import subprocess
import logging
import tempfile
from pathlib import Path
from typing import List, Sequence

from reelforge.core.config.settings import settings
from reelforge.core.exceptions import MediaToolError
from reelforge.core.shared_types import MediaFile, TimeRange
from ..domain.interfaces import IMediaTool

logger = logging.getLogger(__name__)


def _concat_line(path: Path) -> str:
    # The concat demuxer quotes with single quotes; an embedded quote is closed, escaped and reopened
    escaped = str(path.resolve()).replace("'", "'\\''")
    return f"file '{escaped}'\n"


class FFmpegMediaTool(IMediaTool):
    """
    Concrete implementation of IMediaTool using the FFmpeg binary.
    Video cuts are re-encoded for frame accuracy; concatenation is a stream copy.
    """

    def __init__(self, binary: str = None):
        self.binary = binary or settings.FFMPEG_BINARY

    def extract_audio(self, video_path: Path, dest_path: Path) -> None:
        source = self._require_source(video_path)
        output = MediaFile(Path(dest_path))
        output.ensure_parent_dir()

        # -vn: Disable video
        # 16 kHz mono at 24 kbps: small enough that ~1.8 MB holds one minute of speech
        # highpass/lowpass: Drop frequencies outside the speech range
        cmd = [
            self.binary, "-y",
            "-i", str(source.path),
            "-vn",
            "-acodec", "libmp3lame",
            "-ar", "16000",
            "-ac", "1",
            "-b:a", "24k",
            "-af", "highpass=f=80,lowpass=f=8000",
            str(output.path)
        ]
        self._run(cmd, output.path, "Audio extraction")

    def extract_audio_chunk(self, source_path: Path, start_seconds: float, duration_seconds: float, dest_path: Path) -> None:
        source = self._require_source(source_path)
        if start_seconds < 0 or duration_seconds <= 0:
            raise MediaToolError(
                f"Invalid audio chunk range: start={start_seconds}, duration={duration_seconds}",
                dest_path=str(dest_path)
            )
        output = MediaFile(Path(dest_path))
        output.ensure_parent_dir()

        # Output seeking (-ss after -i) is sample accurate for audio.
        # PCM WAV keeps every chunk decodable on its own.
        cmd = [
            self.binary, "-y",
            "-i", str(source.path),
            "-ss", f"{start_seconds:.2f}",
            "-t", f"{duration_seconds:.2f}",
            "-acodec", "pcm_s16le",
            "-ar", "16000",
            "-ac", "1",
            "-f", "wav",
            str(output.path)
        ]
        logger.info(f"Extracting audio chunk: {source.path} [{start_seconds:.2f}s + {duration_seconds:.2f}s] -> {output.path}")
        self._run(cmd, output.path, "Audio chunk extraction")

    def extract_video_segment(self, source_path: Path, start_seconds: float, end_seconds: float, dest_path: Path) -> None:
        source = self._require_source(source_path)
        try:
            time_range = TimeRange(start_seconds=start_seconds, end_seconds=end_seconds)
        except ValueError as e:
            raise MediaToolError(f"Invalid segment times: {e}", dest_path=str(dest_path)) from e

        output = MediaFile(Path(dest_path))
        output.ensure_parent_dir()

        # -ss before -i: fast input seeking
        # -c:v libx264: Re-encode video to ensure frame accuracy (prevents black frames at start)
        # -movflags +faststart: Playable while still downloading
        cmd = [
            self.binary, "-y",
            "-ss", f"{time_range.start_seconds:.3f}",
            "-i", str(source.path),
            "-t", f"{time_range.duration:.3f}",
            "-c:v", "libx264",
            "-preset", "ultrafast",
            "-crf", "18",
            "-c:a", "aac",
            "-movflags", "+faststart",
            str(output.path)
        ]
        logger.info(f"Extracting video segment: {source.path} [{time_range.start_seconds:.3f}s - {time_range.end_seconds:.3f}s] -> {output.path}")
        self._run(cmd, output.path, "Video segment extraction")

    def concat_segments(self, segment_paths: Sequence[Path], dest_path: Path) -> None:
        if not segment_paths:
            raise MediaToolError("No segments to concatenate", dest_path=str(dest_path))

        paths: List[Path] = [Path(p) for p in segment_paths]
        missing = [str(p) for p in paths if not p.exists()]
        if missing:
            raise MediaToolError(f"Segment files not found: {', '.join(missing)}", dest_path=str(dest_path))

        output = MediaFile(Path(dest_path))
        output.ensure_parent_dir()

        with tempfile.TemporaryDirectory(prefix="concat_") as tmp_dir:
            list_file = Path(tmp_dir) / "concat_list.txt"
            list_file.write_text("".join(_concat_line(p) for p in paths), encoding="utf-8")

            cmd = [
                self.binary, "-y",
                "-f", "concat",
                "-safe", "0",
                "-i", str(list_file),
                "-c", "copy",
                "-movflags", "+faststart",
                str(output.path)
            ]
            logger.info(f"Concatenating {len(paths)} segments -> {output.path}")
            self._run(cmd, output.path, "Segment concatenation")

    @staticmethod
    def _require_source(path: Path) -> MediaFile:
        try:
            return MediaFile(Path(path), validate_exists=True)
        except (FileNotFoundError, ValueError) as e:
            raise MediaToolError(str(e)) from e

    def _run(self, cmd: List[str], output_path: Path, description: str) -> None:
        logger.debug(f"Executing FFmpeg: {' '.join(cmd)}")

        try:
            # capture_output=True allows us to log stderr if it fails
            subprocess.run(
                cmd,
                check=True,
                capture_output=True,
                text=True
            )
        except FileNotFoundError as e:
            raise MediaToolError(f"{description} failed: FFmpeg binary not found ({self.binary})", dest_path=str(output_path)) from e
        except subprocess.CalledProcessError as e:
            error_message = e.stderr.strip() if e.stderr else "Unknown FFmpeg error"
            logger.error(f"{description} Failed. STDERR: {error_message}")
            # A half-written output is never a valid result
            output_path.unlink(missing_ok=True)
            raise MediaToolError(f"{description} failed: {error_message}", dest_path=str(output_path)) from e

        if not output_path.exists():
            raise MediaToolError(f"{description} produced no output file: {output_path}", dest_path=str(output_path))
