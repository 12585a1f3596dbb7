"""
Stitches per-chunk transcripts into one global transcript.

Chunk i > 0 starts `overlap` seconds before chunk i-1 ends, so the head of
every later chunk repeats the tail of the previous one. Timestamps are moved
onto the global timeline, then anything that starts inside the shared window
[prev.end_offset - overlap, prev.end_offset) is taken from the previous chunk
only. A word that straddles the window edge is judged by its start time alone.
"""

import logging
from dataclasses import replace
from typing import List, Sequence

from reelforge.core.config.settings import settings
from ..domain.models import AudioProcessingResult, ChunkResult, Segment, Word

logger = logging.getLogger(__name__)


def clean_word(text: str) -> str:
    return text.strip()


def words_to_text(words: Sequence[Word]) -> str:
    return " ".join(t for t in (clean_word(w.text) for w in words) if t)


class MergeEngine:

    def __init__(self, overlap_seconds: float = None):
        self.overlap_seconds = float(overlap_seconds if overlap_seconds is not None else settings.CHUNK_OVERLAP_SECONDS)

    def merge(self, chunk_results: Sequence[ChunkResult]) -> AudioProcessingResult:
        if not chunk_results:
            raise ValueError("no chunk results to merge")

        if len(chunk_results) == 1:
            return chunk_results[0].transcription

        ordered = sorted(chunk_results, key=lambda c: c.chunk_index)
        logger.info(f"Merging {len(ordered)} chunks with timestamp adjustment and overlap deduplication")

        all_words: List[Word] = []
        all_segments: List[Segment] = []
        transcript_parts: List[str] = []
        max_word_end = 0.0
        max_segment_end = 0.0

        for i, chunk in enumerate(ordered):
            result = chunk.transcription
            offset = chunk.start_offset_seconds

            words = [w.shifted(offset) for w in result.words]
            segments = [s.shifted(offset) for s in result.segments]

            for w in words:
                max_word_end = max(max_word_end, w.end)
            for s in segments:
                max_segment_end = max(max_segment_end, s.end)

            if i == 0:
                all_words.extend(words)
                all_segments.extend(segments)
                transcript_parts.append(result.transcript.strip())
                continue

            window_end = ordered[i - 1].end_offset_seconds
            window_start = window_end - self.overlap_seconds

            kept_words = self._drop_overlap_words(words, window_start, window_end)
            kept_segments = self._drop_overlap_segments(segments, window_start, window_end)

            logger.info(
                f"Chunk {chunk.chunk_index}: removed {len(words) - len(kept_words)} overlapping words "
                f"({window_start:.1f}s-{window_end:.1f}s)"
            )

            all_words.extend(kept_words)
            all_segments.extend(kept_segments)
            transcript_parts.append(words_to_text(kept_words))

        all_words.sort(key=lambda w: w.start)
        all_segments.sort(key=lambda s: s.start)

        if any(c.transcription.words for c in ordered):
            duration = max_word_end
        elif max_segment_end > 0:
            duration = max_segment_end
        else:
            duration = max(c.start_offset_seconds + c.transcription.duration_seconds for c in ordered)

        merged = AudioProcessingResult(
            transcript=" ".join(p for p in transcript_parts if p),
            duration_seconds=duration,
            language=ordered[0].transcription.language,
            words=all_words,
            segments=all_segments,
        )
        logger.info(f"Merge complete: {len(merged.words)} words, {len(merged.segments)} segments, {merged.duration_seconds:.1f}s duration")
        return merged

    @staticmethod
    def _in_window(start: float, window_start: float, window_end: float) -> bool:
        return window_start <= start < window_end

    def _drop_overlap_words(self, words: Sequence[Word], window_start: float, window_end: float) -> List[Word]:
        return [w for w in words if not self._in_window(w.start, window_start, window_end)]

    def _drop_overlap_segments(self, segments: Sequence[Segment], window_start: float, window_end: float) -> List[Segment]:
        kept = []
        for seg in segments:
            if seg.end <= window_start or seg.start >= window_end:
                kept.append(seg)
            elif seg.start >= window_start and seg.end <= window_end:
                # Entirely inside the window: the previous chunk already has it
                continue
            else:
                # Partial overlap: keep the segment, drop only its duplicated words
                kept.append(replace(seg, words=self._drop_overlap_words(seg.words, window_start, window_end)))
        return kept


def merge_chunk_results(chunk_results: Sequence[ChunkResult], overlap_seconds: float = None) -> AudioProcessingResult:
    """Functional entry point: fold many chunk results into one."""
    return MergeEngine(overlap_seconds).merge(chunk_results)
