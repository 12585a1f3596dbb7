from reelforge.core.enums import ExportStage, ExportType
from reelforge.core.jobs.service.registry import ActiveJobRegistry
from reelforge.core.jobs.service.store import JobStore, RECOVERY_MESSAGE
from reelforge.features.exports.service.orchestrator import ExportOrchestrator, recover_interrupted_exports


class UnusedMediaTool:
    """Recovery never touches media."""


def test_startup_recovery_fails_interrupted_jobs(project_id):
    """
    Simulates a restart: rows left mid-flight by a dead process
    must end up failed, finished rows stay as they were.
    """
    store = JobStore()
    stuck_pending = store.create(ExportType.STITCHED, project_id, "/tmp/a")
    stuck_running = store.create(ExportType.INDIVIDUAL, project_id, "/tmp/b")
    store.update_progress(stuck_running.job_id, ExportStage.PROCESSING, 3, 10, "clip_3")
    cancelled = store.create(ExportType.STITCHED, project_id, "/tmp/c")
    store.cancel(cancelled.job_id)

    orchestrator = ExportOrchestrator(media_tool=UnusedMediaTool(), registry=ActiveJobRegistry())

    assert orchestrator.recover_interrupted_jobs() == 2

    for job_id in (stuck_pending.job_id, stuck_running.job_id):
        job = orchestrator.get_export_progress(job_id)
        assert job.stage == ExportStage.FAILED
        assert job.error_message == RECOVERY_MESSAGE

    running = orchestrator.get_export_progress(stuck_running.job_id)
    assert running.processed_files == 3
    assert orchestrator.get_export_progress(cancelled.job_id).stage == ExportStage.CANCELLED


def test_recovery_spares_jobs_with_a_live_worker(project_id):
    store = JobStore()
    live = store.create(ExportType.STITCHED, project_id, "/tmp/a")
    registry = ActiveJobRegistry()
    registry.register(live.job_id)

    orchestrator = ExportOrchestrator(media_tool=UnusedMediaTool(), registry=registry)

    assert orchestrator.recover_interrupted_jobs() == 0
    assert orchestrator.get_export_progress(live.job_id).stage == ExportStage.PENDING


def test_standalone_recovery_entry_point(project_id):
    job = JobStore().create(ExportType.INDIVIDUAL, project_id, "/tmp/a")

    assert recover_interrupted_exports() == 1
    assert JobStore().get(job.job_id).stage == ExportStage.FAILED
    assert recover_interrupted_exports() == 0
