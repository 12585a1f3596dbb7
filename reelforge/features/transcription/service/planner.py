import logging
import math
from pathlib import Path
from typing import Optional

from reelforge.core.config.settings import settings
from ..domain.models import ChunkPlan

logger = logging.getLogger(__name__)

# Extracted speech audio is 24 kbps mono MP3: about 1.8 MiB per minute
BYTES_PER_MINUTE = 1.8 * 1024 * 1024
MIN_CHUNKS = 2


class ChunkPlanner:
    """
    Decides whether an audio file fits a single API call and, if not,
    how many overlapping chunks to cut it into.
    Only the byte size is inspected; the file is never decoded.
    """

    def __init__(self,
                 max_single_call_size: Optional[int] = None,
                 chunk_duration_seconds: Optional[int] = None,
                 overlap_seconds: Optional[int] = None,
                 bytes_per_minute: float = BYTES_PER_MINUTE):
        self.max_single_call_size = max_single_call_size if max_single_call_size is not None else settings.WHISPER_MAX_FILE_SIZE
        self.chunk_duration_seconds = chunk_duration_seconds or settings.CHUNK_DURATION_SECONDS
        self.overlap_seconds = overlap_seconds if overlap_seconds is not None else settings.CHUNK_OVERLAP_SECONDS
        self.bytes_per_minute = bytes_per_minute

        if self.overlap_seconds >= self.chunk_duration_seconds:
            raise ValueError(
                f"Overlap ({self.overlap_seconds}s) must be shorter than a chunk ({self.chunk_duration_seconds}s)"
            )

    def plan(self, audio_path: Path) -> ChunkPlan:
        audio_path = Path(audio_path)
        if not audio_path.exists():
            raise FileNotFoundError(f"audio file does not exist: {audio_path}")

        file_size = audio_path.stat().st_size
        needs_chunking = file_size > self.max_single_call_size

        if not needs_chunking:
            return ChunkPlan(
                needs_chunking=False,
                file_size_bytes=file_size,
                chunk_count=1,
                chunk_duration_seconds=self.chunk_duration_seconds,
                overlap_seconds=self.overlap_seconds,
            )

        estimated_minutes = file_size / self.bytes_per_minute
        chunk_minutes = self.chunk_duration_seconds / 60
        chunk_count = max(MIN_CHUNKS, math.ceil(estimated_minutes / chunk_minutes))

        logger.info(
            f"File {audio_path.name}: {file_size} bytes ({file_size / (1024 * 1024):.2f} MB), "
            f"estimated {estimated_minutes:.1f} minutes, will use {chunk_count} chunks"
        )

        return ChunkPlan(
            needs_chunking=True,
            file_size_bytes=file_size,
            chunk_count=chunk_count,
            chunk_duration_seconds=self.chunk_duration_seconds,
            overlap_seconds=self.overlap_seconds,
            estimated_total_duration=estimated_minutes * 60,
        )
