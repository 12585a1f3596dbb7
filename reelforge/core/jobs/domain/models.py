from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from reelforge.core.enums import ExportType, ExportStage


@dataclass(frozen=True)
class ExportJobSubmission:
    """
    DTO for requesting a new export job row.
    """
    job_id: str
    export_type: ExportType
    project_id: int
    output_path: str


@dataclass(frozen=True)
class ExportProgress:
    """
    Read-only snapshot of an export job as stored in the JobStore.
    Pollers only ever see these, never live ORM rows.
    """
    job_id: str
    export_type: ExportType
    project_id: int
    output_path: str
    stage: ExportStage
    progress: float
    current_file: Optional[str]
    total_files: int
    processed_files: int
    error_message: Optional[str]
    created_at: Optional[datetime]
    completed_at: Optional[datetime] = None

    @property
    def is_complete(self) -> bool:
        return self.stage.is_terminal

    @property
    def has_error(self) -> bool:
        return self.stage == ExportStage.FAILED

    @property
    def is_cancelled(self) -> bool:
        return self.stage == ExportStage.CANCELLED
