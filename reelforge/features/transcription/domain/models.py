# File: reelforge/features/transcription/domain/models.py
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Optional


@dataclass(frozen=True)
class Word:
    """
    Atomic unit of a spoken word with its timing.
    """
    text: str
    start: float
    end: float

    def shifted(self, offset: float) -> "Word":
        return replace(self, start=self.start + offset, end=self.end + offset)


@dataclass(frozen=True)
class Segment:
    """
    A transcribed phrase with exact timing.
    Provider metadata is carried through untouched.
    """
    id: int
    start: float
    end: float
    text: str
    words: List[Word] = field(default_factory=list)

    seek: int = 0
    tokens: List[int] = field(default_factory=list)
    temperature: float = 0.0
    avg_logprob: float = 0.0
    compression_ratio: float = 0.0
    no_speech_prob: float = 0.0

    def shifted(self, offset: float) -> "Segment":
        return replace(
            self,
            start=self.start + offset,
            end=self.end + offset,
            words=[w.shifted(offset) for w in self.words]
        )


@dataclass(frozen=True)
class AudioProcessingResult:
    """
    Output of one transcription call, and equally of a merge over many.
    """
    transcript: str
    duration_seconds: float = 0.0
    language: str = ""
    words: List[Word] = field(default_factory=list)
    segments: List[Segment] = field(default_factory=list)


@dataclass(frozen=True)
class ChunkPlan:
    """
    How an audio file is split. Computed once per file.
    """
    needs_chunking: bool
    file_size_bytes: int
    chunk_count: int
    chunk_duration_seconds: int
    overlap_seconds: int
    estimated_total_duration: Optional[float] = None

    def chunk_start(self, index: int) -> float:
        """Start of chunk `index` in the source audio; later chunks reach back by the overlap."""
        if index == 0:
            return 0.0
        return float(index * self.chunk_duration_seconds - self.overlap_seconds)


@dataclass(frozen=True)
class ChunkFile:
    """
    A materialized chunk on disk, with its place on the global timeline.
    """
    index: int
    path: Path
    start_offset_seconds: float
    end_offset_seconds: float


@dataclass(frozen=True)
class ChunkResult:
    chunk_index: int
    start_offset_seconds: float
    end_offset_seconds: float
    # Chunk-local time at which the overlap shared with the next chunk begins
    overlap_start_seconds: float
    transcription: AudioProcessingResult
