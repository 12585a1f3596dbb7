import threading
from pathlib import Path

import pytest

from reelforge.core.config.settings import settings
from reelforge.core.enums import ExportStage, ExportType
from reelforge.core.exceptions import JobNotFoundError, MediaToolError, ProjectNotFoundError
from reelforge.core.jobs.service.registry import ActiveJobRegistry
from reelforge.core.jobs.service.store import JobStore
from reelforge.features.exports.domain.models import (
    ExportRequest,
    build_export_units,
    claim_stitched_output,
    sanitize_project_name,
    stitched_output_filename,
)
from reelforge.features.exports.service.orchestrator import NO_HIGHLIGHTS_MESSAGE, ExportOrchestrator
from reelforge.features.media_tool.domain.interfaces import IMediaTool
from reelforge.features.projects.domain.models import Highlight, HighlightSegment

WAIT_SECONDS = 10


class FakeMediaTool(IMediaTool):
    """
    Writes placeholder files instead of running FFmpeg.
    `on_segment` is called before each cut, with the 1-based call number.
    """

    def __init__(self, on_segment=None, fail_on=None, fail_concat=False):
        self.on_segment = on_segment
        self.fail_on = fail_on
        self.fail_concat = fail_concat
        self.segments = []
        self.concats = []
        self.lock = threading.Lock()

    def extract_audio(self, video_path, dest_path):
        raise NotImplementedError

    def extract_audio_chunk(self, source_path, start_seconds, duration_seconds, dest_path):
        raise NotImplementedError

    def extract_video_segment(self, source_path, start_seconds, end_seconds, dest_path):
        with self.lock:
            self.segments.append((Path(source_path), start_seconds, end_seconds, Path(dest_path)))
            number = len(self.segments)
        if self.on_segment:
            self.on_segment(number)
        if self.fail_on == number:
            raise MediaToolError("Invalid data found when processing input", dest_path=str(dest_path))
        Path(dest_path).write_bytes(b"segment")

    def concat_segments(self, segment_paths, dest_path):
        self.concats.append(([Path(p) for p in segment_paths], Path(dest_path)))
        if self.fail_concat:
            Path(dest_path).write_bytes(b"partial")
            raise MediaToolError("Conversion failed!", dest_path=str(dest_path))
        Path(dest_path).write_bytes(b"".join(Path(p).read_bytes() for p in segment_paths))


def _orchestrator(tool, **kwargs):
    return ExportOrchestrator(media_tool=tool, registry=ActiveJobRegistry(), **kwargs)


@pytest.fixture
def two_highlights(project_repo, project_id, fake_video):
    project_repo.add_video_clip(project_id, "Keynote", str(fake_video), [
        Highlight(id="h1", start=10.0, end=20.0),
        Highlight(id="h2", start=30.0, end=40.0),
    ])
    return project_id


def test_stitched_export_produces_one_file(two_highlights, tmp_path):
    tool = FakeMediaTool()
    orchestrator = _orchestrator(tool)
    out = tmp_path / "exports"

    job_id = orchestrator.export_stitched_highlights(two_highlights, str(out))
    job = orchestrator.wait(job_id, WAIT_SECONDS)

    assert job.stage == ExportStage.COMPLETED, job.error_message
    assert job.progress == 1.0
    assert job.total_files == 2
    assert job.processed_files == 2

    produced = Path(job.output_path)
    assert produced.parent == out
    assert produced.name.startswith("Demo_Talk_stitched_")
    assert produced.suffix == ".mp4"
    assert list(out.iterdir()) == [produced]

    assert [(s[1], s[2]) for s in tool.segments] == [(10.0, 20.0), (30.0, 40.0)]
    parts, _ = tool.concats[0]
    assert [p.name for p in parts] == ["segment_001.mp4", "segment_002.mp4"]
    # Segments are cut under the configured temp dir and never outlive the job
    assert parts[0].parent.parent == settings.TEMP_DIR
    assert not any(p.exists() for p in parts)


def test_individual_export_numbers_files(two_highlights, tmp_path):
    orchestrator = _orchestrator(FakeMediaTool())
    out = tmp_path / "exports"

    job_id = orchestrator.export_individual_highlights(two_highlights, str(out))
    job = orchestrator.wait(job_id, WAIT_SECONDS)

    assert job.stage == ExportStage.COMPLETED, job.error_message
    project_dir = out / "Demo_Talk"
    assert job.output_path == str(project_dir)
    assert sorted(p.name for p in project_dir.iterdir()) == ["1.mp4", "2.mp4"]


def test_padding_widens_cuts(project_repo, project_id, fake_video, tmp_path):
    project_repo.add_video_clip(project_id, "Keynote", str(fake_video), [Highlight(id="h1", start=0.5, end=5.0)])
    tool = FakeMediaTool()
    orchestrator = _orchestrator(tool)

    job_id = orchestrator.export_individual_highlights(project_id, str(tmp_path / "out"), padding_seconds=1.0)
    orchestrator.wait(job_id, WAIT_SECONDS)

    assert [(s[1], s[2]) for s in tool.segments] == [(0.0, 6.0)]


def test_saved_highlight_order_drives_export(project_repo, two_highlights, tmp_path):
    project_repo.set_highlight_order(two_highlights, ["h2", "h1"])
    tool = FakeMediaTool()
    orchestrator = _orchestrator(tool)

    orchestrator.wait(orchestrator.export_individual_highlights(two_highlights, str(tmp_path / "out")), WAIT_SECONDS)

    assert [(s[1], s[3].name) for s in tool.segments] == [(30.0, "1.mp4"), (10.0, "2.mp4")]


def test_project_without_highlights_fails(project_id, tmp_path):
    tool = FakeMediaTool()
    orchestrator = _orchestrator(tool)

    job_id = orchestrator.export_stitched_highlights(project_id, str(tmp_path / "out"))
    job = orchestrator.wait(job_id, WAIT_SECONDS)

    assert job.stage == ExportStage.FAILED
    assert job.error_message == NO_HIGHLIGHTS_MESSAGE
    assert tool.segments == []


def test_validation_errors_are_synchronous(project_id, tmp_path):
    orchestrator = _orchestrator(FakeMediaTool())

    with pytest.raises(ValueError, match="output folder is required"):
        orchestrator.export_stitched_highlights(project_id, "")

    with pytest.raises(ProjectNotFoundError, match="failed to get project"):
        orchestrator.export_individual_highlights(999999, str(tmp_path))

    # Nothing was persisted for rejected requests
    assert orchestrator.get_project_export_jobs(project_id) == []


def test_media_failure_fails_job_with_segment_number(two_highlights, tmp_path):
    orchestrator = _orchestrator(FakeMediaTool(fail_on=2))

    job = orchestrator.wait(orchestrator.export_individual_highlights(two_highlights, str(tmp_path / "out")), WAIT_SECONDS)

    assert job.stage == ExportStage.FAILED
    assert job.error_message.startswith("Failed to extract segment 2:")
    assert job.processed_files == 1


def test_missing_source_video_fails_job(project_repo, project_id, tmp_path):
    project_repo.add_video_clip(project_id, "Gone", str(tmp_path / "deleted.mp4"), [Highlight(id="h1", start=1, end=2)])
    orchestrator = _orchestrator(FakeMediaTool())

    job = orchestrator.wait(orchestrator.export_stitched_highlights(project_id, str(tmp_path / "out")), WAIT_SECONDS)

    assert job.stage == ExportStage.FAILED
    assert "Source video not found for highlight 1" in job.error_message


def test_cancel_stops_after_current_unit(project_repo, project_id, fake_video, tmp_path):
    project_repo.add_video_clip(project_id, "Keynote", str(fake_video), [
        Highlight(id=f"h{i}", start=i * 10.0, end=i * 10.0 + 5) for i in range(5)
    ])
    holder = {}
    # The job id is only known once submission returns, so the first cut waits for it
    ready = threading.Event()

    def cancel_during_first_cut(number):
        ready.wait(WAIT_SECONDS)
        if number == 1:
            holder["cancelled"] = holder["orchestrator"].cancel_export(holder["job_id"])

    tool = FakeMediaTool(on_segment=cancel_during_first_cut)
    orchestrator = _orchestrator(tool)
    holder["orchestrator"] = orchestrator

    holder["job_id"] = orchestrator.export_individual_highlights(project_id, str(tmp_path / "out"))
    ready.set()
    job = orchestrator.wait(holder["job_id"], WAIT_SECONDS)

    assert job.stage == ExportStage.CANCELLED
    assert job.is_cancelled
    assert holder["cancelled"] is True
    assert job.processed_files == 1
    assert len(tool.segments) == 1
    assert job.completed_at is not None


def test_cancel_terminal_and_unknown_jobs(two_highlights, tmp_path):
    orchestrator = _orchestrator(FakeMediaTool())
    job_id = orchestrator.export_individual_highlights(two_highlights, str(tmp_path / "out"))
    orchestrator.wait(job_id, WAIT_SECONDS)

    assert orchestrator.cancel_export(job_id) is False
    assert orchestrator.get_export_progress(job_id).stage == ExportStage.COMPLETED

    with pytest.raises(JobNotFoundError):
        orchestrator.cancel_export("export_does_not_exist")


def test_cancel_orphaned_row_cancels_directly(project_id):
    # A row with no live worker, e.g. left by another process
    job = JobStore().create(ExportType.STITCHED, project_id, "/tmp/x")
    orchestrator = _orchestrator(FakeMediaTool())

    assert orchestrator.cancel_export(job.job_id) is True
    assert orchestrator.get_export_progress(job.job_id).stage == ExportStage.CANCELLED


def test_concurrent_exports_are_isolated(project_repo, fake_video, tmp_path):
    first = project_repo.create_project(name="Alpha", path=str(tmp_path / "a"))
    second = project_repo.create_project(name="Beta", path=str(tmp_path / "b"))
    for pid in (first, second):
        project_repo.add_video_clip(pid, "Clip", str(fake_video), [
            Highlight(id="h1", start=1.0, end=2.0),
            Highlight(id="h2", start=3.0, end=4.0),
            Highlight(id="h3", start=5.0, end=6.0),
        ])
    orchestrator = _orchestrator(FakeMediaTool())
    out = tmp_path / "shared_out"

    job_a = orchestrator.export_individual_highlights(first, str(out))
    job_b = orchestrator.export_stitched_highlights(second, str(out))
    result_a = orchestrator.wait(job_a, WAIT_SECONDS)
    result_b = orchestrator.wait(job_b, WAIT_SECONDS)

    assert result_a.stage == ExportStage.COMPLETED, result_a.error_message
    assert result_b.stage == ExportStage.COMPLETED, result_b.error_message
    assert sorted(p.name for p in (out / "Alpha").iterdir()) == ["1.mp4", "2.mp4", "3.mp4"]
    assert Path(result_b.output_path).name.startswith("Beta_stitched_")
    assert [j.job_id for j in orchestrator.get_project_export_jobs(first)] == [job_a]
    assert orchestrator.registry.active_job_ids() == []


def test_naming_helpers():
    from datetime import datetime

    assert sanitize_project_name("My Talk: Part 1") == "My_Talk__Part_1"
    assert sanitize_project_name("") == "project"
    assert stitched_output_filename("Demo Talk", datetime(2024, 3, 1, 9, 5, 7)) == "Demo_Talk_stitched_20240301_090507.mp4"


def test_build_export_units_validates_times(fake_video):
    bad = HighlightSegment(highlight_id="h9", video_path=str(fake_video), start=8.0, end=3.0,
                           video_clip_id=1, video_clip_name="Keynote")

    with pytest.raises(ValueError, match="Invalid highlight times for highlight 1"):
        build_export_units([bad])


def test_polled_stages_never_go_backwards(project_repo, project_id, fake_video, tmp_path):
    project_repo.add_video_clip(project_id, "Keynote", str(fake_video), [
        Highlight(id=f"h{i}", start=i * 10.0, end=i * 10.0 + 5) for i in range(3)
    ])
    observed = []
    holder = {}
    ready = threading.Event()

    def poll(number):
        ready.wait(WAIT_SECONDS)
        observed.append(holder["orchestrator"].get_export_progress(holder["job_id"]).stage)

    orchestrator = _orchestrator(FakeMediaTool(on_segment=poll))
    holder["orchestrator"] = orchestrator
    holder["job_id"] = orchestrator.export_stitched_highlights(project_id, str(tmp_path / "out"))
    observed.append(orchestrator.get_export_progress(holder["job_id"]).stage)
    ready.set()
    observed.append(orchestrator.wait(holder["job_id"], WAIT_SECONDS).stage)

    ranks = [stage.rank for stage in observed]
    assert ranks == sorted(ranks)
    assert [s for s in observed if s.is_terminal] == [ExportStage.COMPLETED]
    assert ExportStage.EXTRACTING in observed


def test_individual_exports_sharing_a_directory_do_not_interleave(project_repo, project_id, fake_video, tmp_path):
    # "Demo Talk" and "Demo:Talk" both map to <out>/Demo_Talk
    project_repo.add_video_clip(project_id, "Keynote", str(fake_video), [
        Highlight(id="h1", start=10.0, end=20.0),
        Highlight(id="h2", start=30.0, end=40.0),
    ])
    other_video = tmp_path / "other_clip.mp4"
    other_video.write_bytes(b"\x00" * 1024)
    twin = project_repo.create_project(name="Demo:Talk", path=str(tmp_path / "twin"))
    project_repo.add_video_clip(twin, "Panel", str(other_video), [Highlight(id="t1", start=1.0, end=2.0)])

    first_cut_started = threading.Event()
    gate = threading.Event()

    def hold_first_cut(number):
        if number == 1:
            first_cut_started.set()
            gate.wait(WAIT_SECONDS)

    tool = FakeMediaTool(on_segment=hold_first_cut)
    orchestrator = _orchestrator(tool)
    out = tmp_path / "out"

    job_a = orchestrator.export_individual_highlights(project_id, str(out))
    assert first_cut_started.wait(WAIT_SECONDS)

    job_b = orchestrator.export_individual_highlights(twin, str(out))
    result_b = orchestrator.wait(job_b, WAIT_SECONDS)
    gate.set()
    result_a = orchestrator.wait(job_a, WAIT_SECONDS)

    assert result_b.stage == ExportStage.FAILED
    assert "is already in use by export" in result_b.error_message
    assert job_a in result_b.error_message
    assert result_a.stage == ExportStage.COMPLETED, result_a.error_message
    assert sorted(p.name for p in (out / "Demo_Talk").iterdir()) == ["1.mp4", "2.mp4"]
    assert all(source == fake_video for source, _, _, _ in tool.segments)
    assert len(tool.segments) == 2


def test_output_directory_is_reusable_after_the_job_finishes(two_highlights, tmp_path):
    orchestrator = _orchestrator(FakeMediaTool())
    out = tmp_path / "out"

    first = orchestrator.wait(orchestrator.export_individual_highlights(two_highlights, str(out)), WAIT_SECONDS)
    second = orchestrator.wait(orchestrator.export_individual_highlights(two_highlights, str(out)), WAIT_SECONDS)

    assert first.stage == ExportStage.COMPLETED
    assert second.stage == ExportStage.COMPLETED, second.error_message


def test_claim_stitched_output_never_reuses_a_name(tmp_path):
    from datetime import datetime

    moment = datetime(2024, 3, 1, 9, 5, 7)

    first = claim_stitched_output(tmp_path, "Demo Talk", moment)
    second = claim_stitched_output(tmp_path, "Demo Talk", moment)
    third = claim_stitched_output(tmp_path, "Demo Talk", moment)

    assert first.name == "Demo_Talk_stitched_20240301_090507.mp4"
    assert second.name == "Demo_Talk_stitched_20240301_090507_2.mp4"
    assert third.name == "Demo_Talk_stitched_20240301_090507_3.mp4"
    assert all(p.exists() for p in (first, second, third))


def test_stitched_exports_of_one_project_keep_both_files(two_highlights, tmp_path):
    orchestrator = _orchestrator(FakeMediaTool())
    out = tmp_path / "out"

    job_a = orchestrator.export_stitched_highlights(two_highlights, str(out))
    job_b = orchestrator.export_stitched_highlights(two_highlights, str(out))
    result_a = orchestrator.wait(job_a, WAIT_SECONDS)
    result_b = orchestrator.wait(job_b, WAIT_SECONDS)

    assert result_a.stage == ExportStage.COMPLETED, result_a.error_message
    assert result_b.stage == ExportStage.COMPLETED, result_b.error_message
    assert result_a.output_path != result_b.output_path
    assert sorted(str(p) for p in out.iterdir()) == sorted([result_a.output_path, result_b.output_path])


def test_failed_stitch_leaves_no_output_file(two_highlights, tmp_path):
    orchestrator = _orchestrator(FakeMediaTool(fail_concat=True))
    out = tmp_path / "out"

    job = orchestrator.wait(orchestrator.export_stitched_highlights(two_highlights, str(out)), WAIT_SECONDS)

    assert job.stage == ExportStage.FAILED
    assert job.error_message.startswith("Failed to stitch segments:")
    assert list(out.iterdir()) == []


def test_recovery_during_submission_spares_the_new_job(two_highlights, tmp_path):
    class RecoveringStore(JobStore):
        """Runs startup recovery right after the row is written, before the worker starts."""

        def __init__(self):
            super().__init__()
            self.orchestrator = None
            self.recovered = []

        def create(self, *args, **kwargs):
            job = super().create(*args, **kwargs)
            self.recovered.append(self.orchestrator.recover_interrupted_jobs())
            return job

    store = RecoveringStore()
    orchestrator = _orchestrator(FakeMediaTool(), job_store=store)
    store.orchestrator = orchestrator

    job = orchestrator.wait(orchestrator.export_individual_highlights(two_highlights, str(tmp_path / "out")), WAIT_SECONDS)

    assert store.recovered == [0]
    assert job.stage == ExportStage.COMPLETED, job.error_message


def test_worker_does_nothing_for_an_already_finished_row(two_highlights, tmp_path):
    tool = FakeMediaTool()
    orchestrator = _orchestrator(tool)
    store = orchestrator.store
    out = tmp_path / "out"

    job = store.create(ExportType.INDIVIDUAL, two_highlights, str(out))
    store.cancel(job.job_id)
    handle = orchestrator.registry.register(job.job_id)
    request = ExportRequest(
        job_id=job.job_id,
        export_type=ExportType.INDIVIDUAL,
        project_id=two_highlights,
        project_name="Demo Talk",
        output_folder=out,
    )

    orchestrator._run_job(request, handle)

    assert tool.segments == []
    assert not out.exists()
    assert store.get(job.job_id).stage == ExportStage.CANCELLED
    assert orchestrator.registry.active_job_ids() == []


def test_negative_highlight_time_fails_the_job(project_repo, project_id, fake_video, tmp_path):
    project_repo.add_video_clip(project_id, "Keynote", str(fake_video), [Highlight(id="h1", start=-1.0, end=5.0)])
    tool = FakeMediaTool()
    orchestrator = _orchestrator(tool)

    job = orchestrator.wait(orchestrator.export_stitched_highlights(project_id, str(tmp_path / "out")), WAIT_SECONDS)

    assert job.stage == ExportStage.FAILED
    assert "Invalid highlight times for highlight 1" in job.error_message
    assert tool.segments == []
