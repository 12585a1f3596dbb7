import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from reelforge.core.enums import ExportType
from reelforge.core.shared_types import TimeRange
from reelforge.features.projects.domain.models import HighlightSegment

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


def sanitize_project_name(name: str) -> str:
    """'My Talk: Part 1' -> 'My_Talk__Part_1'"""
    return _UNSAFE_CHARS.sub("_", name) or "project"


def stitched_output_filename(project_name: str, now: Optional[datetime] = None) -> str:
    timestamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return f"{sanitize_project_name(project_name)}_stitched_{timestamp}.mp4"


def claim_stitched_output(output_folder: Path, project_name: str, now: Optional[datetime] = None) -> Path:
    """
    Atomically creates an empty, not yet used stitched output file and returns its path.
    Two exports of the same project in the same second get `<name>.mp4` and `<name>_2.mp4`.
    """
    base = Path(stitched_output_filename(project_name, now))
    attempt = 1
    while True:
        name = base.name if attempt == 1 else f"{base.stem}_{attempt}{base.suffix}"
        candidate = Path(output_folder) / name
        try:
            with open(candidate, "x"):
                pass
            return candidate
        except FileExistsError:
            attempt += 1


@dataclass(frozen=True)
class ExportRequest:
    """
    Everything a background export needs, fixed at submission time.
    """
    job_id: str
    export_type: ExportType
    project_id: int
    project_name: str
    output_folder: Path
    padding_seconds: float = 0.0


@dataclass(frozen=True)
class ExportUnit:
    """
    One highlight validated and ready to cut.
    `ordinal` is 1-based and names the file in individual exports.
    """
    ordinal: int
    source_path: Path
    time_range: TimeRange
    label: str


def build_export_units(segments: Sequence[HighlightSegment], padding_seconds: float = 0.0) -> List[ExportUnit]:
    """
    Validates highlights before any file is written.

    Raises:
        ValueError: A highlight has negative or inverted times.
        FileNotFoundError: A highlight's source video is missing.
    """
    units = []
    for ordinal, seg in enumerate(segments, start=1):
        try:
            time_range = TimeRange(start_seconds=seg.start, end_seconds=seg.end)
        except ValueError as e:
            raise ValueError(f"Invalid highlight times for highlight {ordinal} ({seg.highlight_id}): {e}") from e

        source = Path(seg.video_path)
        if not source.is_file():
            raise FileNotFoundError(f"Source video not found for highlight {ordinal}: {source}")

        units.append(ExportUnit(
            ordinal=ordinal,
            source_path=source,
            time_range=time_range.padded(padding_seconds),
            label=source.stem,
        ))
    return units
