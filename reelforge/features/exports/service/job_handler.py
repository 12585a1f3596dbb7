import logging
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence

from reelforge.core.config.settings import settings
from reelforge.core.enums import ExportStage
from reelforge.core.exceptions import ExportCancelled, MediaToolError
from reelforge.core.jobs.service.registry import ActiveJobRegistry, CancelToken, active_jobs
from reelforge.core.jobs.service.store import JobStore
from reelforge.features.media_tool.domain.interfaces import IMediaTool
from ..domain.models import ExportRequest, ExportUnit, claim_stitched_output, sanitize_project_name

logger = logging.getLogger(__name__)


class ExportHandler(ABC):
    """
    Worker for one export type.
    Runs on the job's background thread; reports progress through the JobStore
    and honours cancellation between units of work only.
    """

    def __init__(self, store: JobStore, media_tool: IMediaTool,
                 registry: Optional[ActiveJobRegistry] = None,
                 temp_root: Optional[Path] = None):
        self.store = store
        self.media_tool = media_tool
        self.registry = registry or active_jobs
        self.temp_root = Path(temp_root) if temp_root is not None else settings.TEMP_DIR

    @abstractmethod
    def handle(self, request: ExportRequest, units: Sequence[ExportUnit], token: CancelToken) -> str:
        """
        Produces the export and returns its output path (file or directory).

        Raises:
            ExportCancelled: The token was set at a checkpoint.
            RuntimeError: An output could not be produced.
        """
        pass

    def _extract(self, unit: ExportUnit, dest: Path) -> None:
        try:
            self.media_tool.extract_video_segment(
                unit.source_path,
                unit.time_range.start_seconds,
                unit.time_range.end_seconds,
                dest
            )
        except MediaToolError as e:
            raise RuntimeError(f"Failed to extract segment {unit.ordinal}: {e}") from e

    def _checkpoint(self, request: ExportRequest, token: CancelToken, processed: int, total: int) -> None:
        if token.is_cancelled():
            logger.info(f"Job {request.job_id}: cancellation observed after {processed}/{total} units")
            raise ExportCancelled("Export cancelled by user")


class StitchedExportHandler(ExportHandler):
    """
    Cuts every highlight into a private temp dir, then concatenates them
    into one file directly inside the output folder.
    """

    def handle(self, request: ExportRequest, units: Sequence[ExportUnit], token: CancelToken) -> str:
        total = len(units)
        output_folder = Path(request.output_folder)
        try:
            output_folder.mkdir(parents=True, exist_ok=True)
            self.temp_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise RuntimeError(f"Failed to create output directory: {e}") from e

        with tempfile.TemporaryDirectory(prefix="export_", dir=self.temp_root) as tmp_dir:
            segment_paths: List[Path] = []

            self.store.update_progress(request.job_id, ExportStage.EXTRACTING, 0, total)
            for unit in units:
                self.store.update_progress(request.job_id, ExportStage.EXTRACTING, unit.ordinal - 1, total, unit.label)

                segment_path = Path(tmp_dir) / f"segment_{unit.ordinal:03d}.mp4"
                self._extract(unit, segment_path)
                segment_paths.append(segment_path)

                self.store.update_progress(request.job_id, ExportStage.EXTRACTING, unit.ordinal, total, unit.label)
                self._checkpoint(request, token, unit.ordinal, total)

            self.store.update_progress(request.job_id, ExportStage.STITCHING, total, total, "Combining highlight segments")
            # Reserved only now so a cancelled or failed extraction leaves nothing behind
            try:
                output_file = claim_stitched_output(output_folder, request.project_name)
            except OSError as e:
                raise RuntimeError(f"Failed to create output file: {e}") from e

            try:
                self.media_tool.concat_segments(segment_paths, output_file)
            except MediaToolError as e:
                output_file.unlink(missing_ok=True)
                raise RuntimeError(f"Failed to stitch segments: {e}") from e
            except Exception:
                output_file.unlink(missing_ok=True)
                raise

        logger.info(f"Successfully exported {total} highlights to {output_file.name}")
        return str(output_file)


class IndividualExportHandler(ExportHandler):
    """
    Writes highlight N to <output>/<project>/<N>.mp4.
    The directory is claimed for the lifetime of the job: a second live export
    that maps to the same directory fails instead of overwriting its files.
    """

    def handle(self, request: ExportRequest, units: Sequence[ExportUnit], token: CancelToken) -> str:
        total = len(units)
        project_dir = Path(request.output_folder) / sanitize_project_name(request.project_name)

        owner = self.registry.claim_output(request.job_id, project_dir)
        if owner is not None:
            raise RuntimeError(f"Output directory {project_dir} is already in use by export {owner}")

        try:
            project_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise RuntimeError(f"Failed to create project directory: {e}") from e

        self.store.update_progress(request.job_id, ExportStage.PROCESSING, 0, total)
        for unit in units:
            self.store.update_progress(request.job_id, ExportStage.PROCESSING, unit.ordinal - 1, total, unit.label)

            self._extract(unit, project_dir / f"{unit.ordinal}.mp4")

            self.store.update_progress(request.job_id, ExportStage.PROCESSING, unit.ordinal, total, unit.label)
            self._checkpoint(request, token, unit.ordinal, total)

        logger.info(f"Successfully exported {total} individual highlights to {project_dir}")
        return str(project_dir)
