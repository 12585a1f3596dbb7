import logging
import time
import uuid
from typing import List, Optional

from reelforge.core.enums import ExportStage, ExportType
from reelforge.core.exceptions import JobNotFoundError
from ..data.repository import SqlExportJobRepo
from ..domain.interfaces import IExportJobRepository
from ..domain.models import ExportJobSubmission, ExportProgress

logger = logging.getLogger(__name__)

RECOVERY_MESSAGE = "Export interrupted - application was closed during processing"


class JobStore:
    """
    Public API for the Jobs Core Module.
    Durable record of export identity, stage, progress and result.
    """

    def __init__(self, repo: Optional[IExportJobRepository] = None):
        # In a full DI framework, this would be injected.
        self.repo = repo or SqlExportJobRepo()

    @staticmethod
    def new_job_id(project_id: int) -> str:
        # time prefix keeps ids sortable; the random suffix keeps them unique under concurrency
        return f"export_{project_id}_{time.time_ns()}_{uuid.uuid4().hex[:8]}"

    def create(self, export_type: ExportType, project_id: int, output_path: str,
               job_id: Optional[str] = None) -> ExportProgress:
        submission = ExportJobSubmission(
            job_id=job_id or self.new_job_id(project_id),
            export_type=export_type,
            project_id=project_id,
            output_path=output_path,
        )
        job = self.repo.create_job(submission)
        logger.info(f"Export Job Submitted: {job.job_id} [{export_type.value}] for Project {project_id}")
        return job

    def get(self, job_id: str) -> ExportProgress:
        job = self.repo.get_job(job_id)
        if not job:
            raise JobNotFoundError(f"job not found: {job_id}")
        return job

    def list_for_project(self, project_id: int) -> List[ExportProgress]:
        return self.repo.list_jobs_for_project(project_id)

    def list_unfinished(self) -> List[ExportProgress]:
        return self.repo.list_unfinished_jobs()

    def set_stage(self, job_id: str, stage: ExportStage) -> bool:
        applied = self.repo.set_stage(job_id, stage)
        if not applied:
            logger.debug(f"Job {job_id}: stage change to {stage.value} skipped")
        return applied

    def update_progress(self,
                        job_id: str,
                        stage: ExportStage,
                        processed_files: int,
                        total_files: int,
                        current_file: Optional[str] = None) -> bool:
        progress = processed_files / total_files if total_files else 0.0
        applied = self.repo.update_progress(job_id, stage, progress, current_file, total_files, processed_files)
        if not applied:
            logger.debug(f"Job {job_id}: progress update skipped (job already finished)")
        return applied

    def complete(self, job_id: str, output_path: str) -> bool:
        applied = self.repo.mark_completed(job_id, output_path)
        if applied:
            logger.info(f"Job {job_id} Completed successfully -> {output_path}")
        return applied

    def fail(self, job_id: str, error_message: str) -> bool:
        applied = self.repo.mark_failed(job_id, error_message)
        if applied:
            logger.error(f"Job {job_id} Failed: {error_message}")
        return applied

    def cancel(self, job_id: str) -> bool:
        applied = self.repo.mark_cancelled(job_id)
        if applied:
            logger.info(f"Job {job_id} Cancelled")
        return applied

    def fail_unfinished(self, message: str = RECOVERY_MESSAGE) -> int:
        """
        Marks every non-terminal job as failed.
        Used on startup: a job without a live worker can never finish.
        """
        recovered = 0
        for job in self.list_unfinished():
            if self.repo.mark_failed(job.job_id, message):
                recovered += 1
                logger.info(f"Marked interrupted job {job.job_id} as failed (was {job.stage.value})")
        if recovered:
            logger.info(f"Recovered {recovered} interrupted export jobs")
        return recovered
