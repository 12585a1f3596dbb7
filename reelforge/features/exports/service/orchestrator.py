import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional

from reelforge.core.config.settings import settings
from reelforge.core.enums import ExportStage, ExportType
from reelforge.core.exceptions import ExportCancelled, ProjectNotFoundError
from reelforge.core.jobs.domain.models import ExportProgress
from reelforge.core.jobs.service.registry import ActiveJobHandle, ActiveJobRegistry, active_jobs
from reelforge.core.jobs.service.store import RECOVERY_MESSAGE, JobStore
from reelforge.features.media_tool.domain.interfaces import IMediaTool
from reelforge.features.media_tool.service.api import get_media_tool
from reelforge.features.projects.data.repository import SqlProjectRepo
from reelforge.features.projects.domain.interfaces import IProjectRepository
from reelforge.features.projects.service.api import get_project_highlights_for_export
from ..domain.models import ExportRequest, build_export_units
from .job_handler import ExportHandler, IndividualExportHandler, StitchedExportHandler

logger = logging.getLogger(__name__)

NO_HIGHLIGHTS_MESSAGE = "No highlights found to export"


class ExportOrchestrator:
    """
    Public API for the Exports Feature.
    Validates a request synchronously, persists the job, then hands the work
    to one background thread per job. Callers poll the JobStore for progress.
    """

    def __init__(self,
                 job_store: Optional[JobStore] = None,
                 project_repo: Optional[IProjectRepository] = None,
                 media_tool: Optional[IMediaTool] = None,
                 registry: Optional[ActiveJobRegistry] = None,
                 padding_seconds: Optional[float] = None):
        self.store = job_store or JobStore()
        self.project_repo = project_repo or SqlProjectRepo()
        self.media_tool = media_tool or get_media_tool()
        self.registry = registry or active_jobs
        self.padding_seconds = padding_seconds if padding_seconds is not None else settings.EXPORT_PADDING_SECONDS
        settings.ensure_dirs()

        self._threads: Dict[str, threading.Thread] = {}
        self._threads_lock = threading.Lock()

    # --- Submission ---

    def export_stitched_highlights(self, project_id: int, output_folder: str,
                                   padding_seconds: Optional[float] = None) -> str:
        """
        Starts an export that joins every highlight into one MP4.
        Returns the job id immediately; the file is written in the background.
        """
        return self._submit(ExportType.STITCHED, project_id, output_folder, padding_seconds)

    def export_individual_highlights(self, project_id: int, output_folder: str,
                                     padding_seconds: Optional[float] = None) -> str:
        """
        Starts an export that writes one MP4 per highlight.
        Returns the job id immediately; the files are written in the background.
        """
        return self._submit(ExportType.INDIVIDUAL, project_id, output_folder, padding_seconds)

    def _submit(self, export_type: ExportType, project_id: int, output_folder: str,
                padding_seconds: Optional[float]) -> str:
        # 1. Validate before anything is persisted
        if not output_folder or not str(output_folder).strip():
            raise ValueError("output folder is required")

        project = self.project_repo.get_project(project_id)
        if not project:
            raise ProjectNotFoundError(f"failed to get project: project {project_id} not found")

        # 2. Register, then persist (pending).
        # Recovery skips ids with a live handle, so the row must never exist without one.
        job_id = JobStore.new_job_id(project_id)
        handle = self.registry.register(job_id)
        try:
            job = self.store.create(export_type, project_id, str(output_folder), job_id=job_id)
        except Exception:
            self.registry.unregister(job_id)
            raise

        request = ExportRequest(
            job_id=job.job_id,
            export_type=export_type,
            project_id=project_id,
            project_name=project.name,
            output_folder=Path(output_folder),
            padding_seconds=self.padding_seconds if padding_seconds is None else padding_seconds,
        )

        # 3. Start the worker
        worker = threading.Thread(
            target=self._run_job,
            args=(request, handle),
            name=f"export-{job.job_id}",
            daemon=True,
        )
        with self._threads_lock:
            self._threads[job.job_id] = worker
        worker.start()

        logger.info(f"Started {export_type.value} export {job.job_id} for project {project_id} -> {output_folder}")
        return job.job_id

    # --- Background worker ---

    def _handler_for(self, export_type: ExportType) -> ExportHandler:
        if export_type == ExportType.STITCHED:
            return StitchedExportHandler(self.store, self.media_tool, self.registry)
        return IndividualExportHandler(self.store, self.media_tool, self.registry)

    def _run_job(self, request: ExportRequest, handle: ActiveJobHandle) -> None:
        job_id = request.job_id
        token = handle.cancel_token
        try:
            # 1. Prepare
            if not self.store.set_stage(job_id, ExportStage.PREPARING):
                logger.warning(f"Job {job_id} was finished before its worker started; nothing to do")
                return
            token.raise_if_cancelled()

            segments = get_project_highlights_for_export(request.project_id, repo=self.project_repo)
            if not segments:
                self.store.fail(job_id, NO_HIGHLIGHTS_MESSAGE)
                return

            units = build_export_units(segments, request.padding_seconds)
            logger.info(f"Job {job_id}: exporting {len(units)} highlights")
            token.raise_if_cancelled()

            # 2. Produce
            output_path = self._handler_for(request.export_type).handle(request, units, token)

            # 3. Finish
            self.store.complete(job_id, output_path)

        except ExportCancelled:
            self.store.cancel(job_id)
        except Exception as e:
            logger.exception(f"Job {job_id} crashed")
            self.store.fail(job_id, str(e))
        finally:
            self.registry.unregister(job_id)
            with self._threads_lock:
                self._threads.pop(job_id, None)

    # --- Control & Queries ---

    def cancel_export(self, job_id: str) -> bool:
        """
        Requests cancellation. Returns True if the job was running or was
        moved to cancelled here; False if it had already finished.

        Raises:
            JobNotFoundError: No job with this id exists.
        """
        job = self.store.get(job_id)
        if job.stage.is_terminal:
            logger.info(f"Job {job_id} already finished ({job.stage.value}); nothing to cancel")
            return False

        if self.registry.cancel(job_id):
            return True

        # No live worker owns this row, so nothing else will ever move it
        return self.store.cancel(job_id)

    def get_export_progress(self, job_id: str) -> ExportProgress:
        return self.store.get(job_id)

    def get_project_export_jobs(self, project_id: int) -> List[ExportProgress]:
        return self.store.list_for_project(project_id)

    def recover_interrupted_jobs(self) -> int:
        """
        Startup hook. Jobs left mid-flight by a previous process are marked
        failed, except ones with a live worker in this process.
        """
        live = set(self.registry.active_job_ids())
        recovered = 0
        for job in self.store.list_unfinished():
            if job.job_id in live:
                continue
            if self.store.fail(job.job_id, RECOVERY_MESSAGE):
                recovered += 1
        if recovered:
            logger.info(f"Recovered {recovered} interrupted export jobs")
        return recovered

    def wait(self, job_id: str, timeout: Optional[float] = None) -> ExportProgress:
        """
        Blocks until the job's worker exits (or timeout), then returns its snapshot.
        """
        with self._threads_lock:
            worker = self._threads.get(job_id)
        if worker is not None:
            worker.join(timeout)
        return self.store.get(job_id)


def recover_interrupted_exports() -> int:
    """Standalone startup entry point: fails every unfinished job from a previous run."""
    return JobStore().fail_unfinished()
