from abc import ABC, abstractmethod
from typing import List, Optional

from reelforge.core.enums import ExportStage
from .models import ExportJobSubmission, ExportProgress


class IExportJobRepository(ABC):
    """
    Contract for export job persistence.
    Every write is guarded: a terminal row is never rewritten and a stage
    never moves backwards. Guarded writes return False when they were skipped.
    """

    @abstractmethod
    def create_job(self, submission: ExportJobSubmission) -> ExportProgress:
        """Creates a new row in the PENDING stage."""
        pass

    @abstractmethod
    def get_job(self, job_id: str) -> Optional[ExportProgress]:
        pass

    @abstractmethod
    def list_jobs_for_project(self, project_id: int) -> List[ExportProgress]:
        """All jobs of a project, newest first."""
        pass

    @abstractmethod
    def list_unfinished_jobs(self) -> List[ExportProgress]:
        """Jobs whose stage is not terminal (left behind by a crash)."""
        pass

    @abstractmethod
    def update_progress(self,
                        job_id: str,
                        stage: ExportStage,
                        progress: float,
                        current_file: Optional[str],
                        total_files: int,
                        processed_files: int) -> bool:
        pass

    @abstractmethod
    def set_stage(self, job_id: str, stage: ExportStage) -> bool:
        pass

    @abstractmethod
    def mark_completed(self, job_id: str, output_path: str) -> bool:
        pass

    @abstractmethod
    def mark_failed(self, job_id: str, error_message: str) -> bool:
        pass

    @abstractmethod
    def mark_cancelled(self, job_id: str) -> bool:
        pass
