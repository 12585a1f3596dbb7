from abc import ABC, abstractmethod
from pathlib import Path
from typing import Sequence


class IMediaTool(ABC):
    """
    Contract for the external media-processing tool.
    Abstracts away the underlying binary (FFmpeg) from the business logic.
    Every operation blocks until the tool exits, and either leaves a valid
    file at dest_path or raises MediaToolError. No chunk or merge logic lives here.
    """

    @abstractmethod
    def extract_audio(self, video_path: Path, dest_path: Path) -> None:
        """
        Extracts the speech track of a video as low-bitrate mono MP3,
        the format the chunk planner's size heuristic assumes.
        """
        pass

    @abstractmethod
    def extract_audio_chunk(self, source_path: Path, start_seconds: float, duration_seconds: float, dest_path: Path) -> None:
        """
        Cuts [start, start + duration) out of an audio file.
        A range running past end-of-file is clamped by the tool, not an error.
        """
        pass

    @abstractmethod
    def extract_video_segment(self, source_path: Path, start_seconds: float, end_seconds: float, dest_path: Path) -> None:
        """
        Cuts [start, end) out of a video file.

        Raises:
            MediaToolError: If the source is missing, the range is invalid or the tool fails.
        """
        pass

    @abstractmethod
    def concat_segments(self, segment_paths: Sequence[Path], dest_path: Path) -> None:
        """Joins already-encoded segments, in order, into one file."""
        pass
