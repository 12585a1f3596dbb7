import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence

from reelforge.core.exceptions import ChunkTranscriptionError
from ..domain.interfaces import ITranscriber
from ..domain.models import ChunkFile, ChunkPlan, ChunkResult

logger = logging.getLogger(__name__)


class TranscriptionExecutor:
    """
    Fan-out / fan-in: one transcription call per chunk, all at once.
    The pool is sized to the chunk count, and leaving the `with` block
    joins every worker, so no call outlives the merge step.
    """

    def __init__(self, transcriber: ITranscriber):
        self.transcriber = transcriber

    def run(self, chunks: Sequence[ChunkFile], plan: ChunkPlan) -> List[ChunkResult]:
        if not chunks:
            return []

        results: List[Optional[ChunkResult]] = [None] * len(chunks)
        failures: Dict[int, str] = {}

        with ThreadPoolExecutor(max_workers=len(chunks), thread_name_prefix="chunk") as pool:
            futures = [(slot, chunk, pool.submit(self._transcribe_chunk, chunk, plan)) for slot, chunk in enumerate(chunks)]

        for slot, chunk, future in futures:
            error = future.exception()
            if error is not None:
                logger.error(f"Chunk {chunk.index} failed: {error}")
                failures[chunk.index] = str(error)
            else:
                results[slot] = future.result()

        if failures:
            raise ChunkTranscriptionError(failures)

        # Completion order is not dispatch order
        return sorted(results, key=lambda r: r.chunk_index)

    def _transcribe_chunk(self, chunk: ChunkFile, plan: ChunkPlan) -> ChunkResult:
        logger.info(f"Processing chunk {chunk.index}: {chunk.path.name}")
        transcription = self.transcriber.transcribe(chunk.path)

        result = ChunkResult(
            chunk_index=chunk.index,
            start_offset_seconds=chunk.start_offset_seconds,
            end_offset_seconds=chunk.end_offset_seconds,
            overlap_start_seconds=float(plan.chunk_duration_seconds - plan.overlap_seconds),
            transcription=transcription,
        )
        logger.info(
            f"Completed chunk {chunk.index}: {result.start_offset_seconds:.1f}s-{result.end_offset_seconds:.1f}s, "
            f"{len(transcription.words)} words"
        )
        return result
