import hashlib
import logging
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from reelforge.core.config.settings import settings
from reelforge.core.exceptions import ChunkExtractionError, MediaToolError
from reelforge.features.media_tool.domain.interfaces import IMediaTool
from ..domain.models import ChunkFile, ChunkPlan

logger = logging.getLogger(__name__)


def chunk_filename(source_path: Path, index: int, start_seconds: float) -> str:
    """
    Content-addressed name: concurrent jobs on different sources never collide.
    """
    digest = hashlib.md5(f"{source_path}_{index}_{start_seconds:f}".encode("utf-8")).hexdigest()
    return f"chunk_{index}_{digest[:16]}.wav"


class ChunkExtractor:
    """
    Materializes the chunks of a ChunkPlan as temporary audio files.
    Either every chunk is produced or none is left behind.
    """

    def __init__(self, media_tool: IMediaTool, temp_root: Optional[Path] = None, size_limit: Optional[int] = None):
        self.media_tool = media_tool
        self.temp_root = Path(temp_root) if temp_root is not None else settings.TEMP_DIR
        self.size_limit = size_limit

    @contextmanager
    def extract(self, source_path: Path, plan: ChunkPlan) -> Iterator[List[ChunkFile]]:
        """
        Yields the chunk files; they are deleted when the block exits,
        whether it exits normally or with an exception.
        """
        source_path = Path(source_path)
        self.temp_root.mkdir(parents=True, exist_ok=True)
        tmp_dir = Path(tempfile.mkdtemp(prefix="audio_chunks_", dir=self.temp_root))

        try:
            chunks = self._extract_all(source_path, plan, tmp_dir)
            yield chunks
        finally:
            shutil.rmtree(tmp_dir, ignore_errors=True)
            logger.debug(f"Removed chunk directory {tmp_dir}")

    def _extract_all(self, source_path: Path, plan: ChunkPlan, tmp_dir: Path) -> List[ChunkFile]:
        chunks: List[ChunkFile] = []
        duration = float(plan.chunk_duration_seconds)

        for i in range(plan.chunk_count):
            start = plan.chunk_start(i)
            chunk_path = tmp_dir / chunk_filename(source_path, i, start)

            try:
                self.media_tool.extract_audio_chunk(source_path, start, duration, chunk_path)
            except MediaToolError as e:
                self._cleanup(chunks)
                raise ChunkExtractionError(f"failed to extract audio chunk {i}: {e}", chunk_index=i) from e

            if chunk_path.exists():
                size = chunk_path.stat().st_size
                logger.info(f"Created chunk {i}: {chunk_path.name} ({size / (1024 * 1024):.2f} MB, start: {start:.1f}s)")
                if self.size_limit is not None and size > self.size_limit:
                    logger.warning(f"Chunk {i} is {size} bytes, above the {self.size_limit} byte single-call limit")

            chunks.append(ChunkFile(
                index=i,
                path=chunk_path,
                start_offset_seconds=start,
                end_offset_seconds=start + duration,
            ))

        return chunks

    @staticmethod
    def _cleanup(chunks: List[ChunkFile]) -> None:
        for chunk in chunks:
            try:
                chunk.path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"failed to cleanup chunk {chunk.path}: {e}")
