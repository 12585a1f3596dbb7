import logging
from datetime import datetime, timezone
from typing import List, Optional

from reelforge.core.database.connection import SessionLocal
from reelforge.core.enums import ExportStage, TERMINAL_STAGES
from reelforge.core.jobs.models import ExportJobModel
# Registers ProjectModel so the ExportJobModel.project relationship can be configured
from reelforge.features.projects.data.sql_models import ProjectModel  # noqa: F401
from ..domain.interfaces import IExportJobRepository
from ..domain.models import ExportJobSubmission, ExportProgress

logger = logging.getLogger(__name__)


def _to_snapshot(job: ExportJobModel) -> ExportProgress:
    return ExportProgress(
        job_id=job.job_id,
        export_type=job.export_type,
        project_id=job.project_id,
        output_path=job.output_path,
        stage=job.stage,
        progress=job.progress,
        current_file=job.current_file,
        total_files=job.total_files,
        processed_files=job.processed_files,
        error_message=job.error_message,
        created_at=job.created_at,
        completed_at=job.completed_at,
    )


def _can_move_to(job: ExportJobModel, stage: ExportStage) -> bool:
    if job.stage in TERMINAL_STAGES:
        return False
    return stage.rank >= job.stage.rank


class SqlExportJobRepo(IExportJobRepository):

    def create_job(self, submission: ExportJobSubmission) -> ExportProgress:
        with SessionLocal() as db:
            job = ExportJobModel(
                job_id=submission.job_id,
                export_type=submission.export_type,
                project_id=submission.project_id,
                output_path=submission.output_path,
                stage=ExportStage.PENDING,
                progress=0.0,
                total_files=0,
                processed_files=0,
            )
            db.add(job)
            db.commit()
            db.refresh(job)
            return _to_snapshot(job)

    def get_job(self, job_id: str) -> Optional[ExportProgress]:
        with SessionLocal() as db:
            job = db.get(ExportJobModel, job_id)
            return _to_snapshot(job) if job else None

    def list_jobs_for_project(self, project_id: int) -> List[ExportProgress]:
        with SessionLocal() as db:
            jobs = (
                db.query(ExportJobModel)
                .filter(ExportJobModel.project_id == project_id)
                .order_by(ExportJobModel.created_at.desc())
                .all()
            )
            return [_to_snapshot(j) for j in jobs]

    def list_unfinished_jobs(self) -> List[ExportProgress]:
        with SessionLocal() as db:
            jobs = (
                db.query(ExportJobModel)
                .filter(ExportJobModel.stage.notin_(list(TERMINAL_STAGES)))
                .all()
            )
            return [_to_snapshot(j) for j in jobs]

    def update_progress(self,
                        job_id: str,
                        stage: ExportStage,
                        progress: float,
                        current_file: Optional[str],
                        total_files: int,
                        processed_files: int) -> bool:
        with SessionLocal() as db:
            job = db.get(ExportJobModel, job_id)
            if not job or not _can_move_to(job, stage):
                return False

            job.stage = stage
            job.progress = max(0.0, min(1.0, float(progress)))
            job.current_file = current_file
            job.total_files = total_files
            job.processed_files = processed_files
            db.commit()
            return True

    def set_stage(self, job_id: str, stage: ExportStage) -> bool:
        with SessionLocal() as db:
            job = db.get(ExportJobModel, job_id)
            if not job or not _can_move_to(job, stage):
                return False

            job.stage = stage
            db.commit()
            return True

    def mark_completed(self, job_id: str, output_path: str) -> bool:
        with SessionLocal() as db:
            job = db.get(ExportJobModel, job_id)
            if not job or not _can_move_to(job, ExportStage.COMPLETED):
                return False

            job.stage = ExportStage.COMPLETED
            job.progress = 1.0
            job.processed_files = job.total_files
            job.output_path = output_path
            job.completed_at = datetime.now(timezone.utc)
            db.commit()
            return True

    def mark_failed(self, job_id: str, error_message: str) -> bool:
        with SessionLocal() as db:
            job = db.get(ExportJobModel, job_id)
            if not job or not _can_move_to(job, ExportStage.FAILED):
                return False

            job.stage = ExportStage.FAILED
            job.error_message = error_message
            job.completed_at = datetime.now(timezone.utc)
            db.commit()
            return True

    def mark_cancelled(self, job_id: str) -> bool:
        with SessionLocal() as db:
            job = db.get(ExportJobModel, job_id)
            if not job or not _can_move_to(job, ExportStage.CANCELLED):
                return False

            job.stage = ExportStage.CANCELLED
            job.completed_at = datetime.now(timezone.utc)
            db.commit()
            return True
