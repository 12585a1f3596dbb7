# File: reelforge/core/exceptions.py

from typing import Dict, List, Optional


class ReelforgeError(Exception):
    """Base class for every error raised by the job engine."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class MediaToolError(ReelforgeError):
    """The external media tool (FFmpeg) could not produce its output file."""

    def __init__(self, message: str, dest_path: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.dest_path = dest_path


class ChunkExtractionError(ReelforgeError):
    """Splitting an oversized audio file into chunks failed."""

    def __init__(self, message: str, chunk_index: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.chunk_index = chunk_index


class TranscriptionError(ReelforgeError):
    """A transcription request could not be completed."""


class ChunkTranscriptionError(TranscriptionError):
    """
    One or more chunks failed to transcribe.
    Carries every failed index so the caller sees the whole picture.
    """

    def __init__(self, failures: Dict[int, str]):
        self.failed_indices: List[int] = sorted(failures)
        parts = [f"chunk {i}: {failures[i]}" for i in self.failed_indices]
        super().__init__(f"chunk processing failed: {'; '.join(parts)}", details={"failures": failures})


class ProjectNotFoundError(ReelforgeError, ValueError):
    """Raised synchronously when an export is requested for an unknown project."""


class JobNotFoundError(ReelforgeError, LookupError):
    """No export job exists with the given id."""


class ExportCancelled(ReelforgeError):
    """Raised inside an export worker when it observes its cancellation token."""
