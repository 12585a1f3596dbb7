from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class TimeRange:
    """
    Value Object representing a valid span of time.
    Enforces that start_seconds is strictly before end_seconds.
    """
    start_seconds: float
    end_seconds: float

    def __post_init__(self):
        if self.start_seconds < 0 or self.end_seconds < 0:
            raise ValueError(f"Timestamps cannot be negative ({self.start_seconds}, {self.end_seconds}).")
        if self.start_seconds >= self.end_seconds:
            raise ValueError(f"Start time ({self.start_seconds}) must be before end time ({self.end_seconds}).")

    @property
    def duration(self) -> float:
        return self.end_seconds - self.start_seconds

    def padded(self, padding_seconds: float) -> "TimeRange":
        """Widens the range on both sides, never below zero."""
        if padding_seconds <= 0:
            return self
        return TimeRange(max(0.0, self.start_seconds - padding_seconds), self.end_seconds + padding_seconds)


@dataclass(frozen=True)
class MediaFile:
    """
    Entity representing a media file on the filesystem.
    Encapsulates path validation and directory creation.
    """
    path: Path
    validate_exists: bool = False

    def __post_init__(self):
        if str(self.path).strip() in (".", ""):
            raise ValueError("File path cannot be empty.")
        if self.validate_exists:
            if not self.path.exists():
                raise FileNotFoundError(f"Media file not found: {self.path}")
            if not self.path.is_file():
                raise ValueError(f"Path is not a file: {self.path}")

    def exists(self) -> bool:
        return self.path.exists()

    def ensure_parent_dir(self) -> None:
        """Creates the directory structure for this file if it doesn't exist."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
