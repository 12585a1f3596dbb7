from typing import List, Optional, Sequence

from reelforge.core.database.connection import SessionLocal
# Registers ExportJobModel so the ProjectModel.export_jobs relationship can be configured
from reelforge.core.jobs.models import ExportJobModel  # noqa: F401
from ..domain.interfaces import IProjectRepository
from ..domain.models import Highlight, HighlightSegment, ProjectInfo
from .sql_models import ProjectModel, VideoClipModel


class SqlProjectRepo(IProjectRepository):

    def get_project(self, project_id: int) -> Optional[ProjectInfo]:
        with SessionLocal() as db:
            project = db.get(ProjectModel, project_id)
            if not project:
                return None
            return ProjectInfo(
                id=project.id,
                name=project.name,
                path=project.path,
                description=project.description,
                highlight_order=list(project.highlight_order or []),
            )

    def get_highlight_segments(self, project_id: int) -> List[HighlightSegment]:
        with SessionLocal() as db:
            clips = (
                db.query(VideoClipModel)
                .filter(VideoClipModel.project_id == project_id)
                .order_by(VideoClipModel.id)
                .all()
            )

            segments = []
            for clip in clips:
                for raw in clip.highlights or []:
                    highlight = Highlight.from_dict(raw)
                    segments.append(HighlightSegment(
                        highlight_id=highlight.id,
                        video_path=clip.file_path,
                        start=highlight.start,
                        end=highlight.end,
                        video_clip_id=clip.id,
                        video_clip_name=clip.name,
                        color_id=highlight.color_id,
                        text=highlight.text,
                    ))
            return segments

    # --- Seeding helpers (the editor owns highlight CRUD) ---

    def create_project(self, name: str, path: str, description: Optional[str] = None) -> int:
        with SessionLocal() as db:
            project = ProjectModel(name=name, path=path, description=description, highlight_order=[])
            db.add(project)
            db.commit()
            db.refresh(project)
            return project.id

    def add_video_clip(self,
                       project_id: int,
                       name: str,
                       file_path: str,
                       highlights: Sequence[Highlight] = (),
                       duration: Optional[float] = None) -> int:
        with SessionLocal() as db:
            clip = VideoClipModel(
                project_id=project_id,
                name=name,
                file_path=file_path,
                duration=duration,
                highlights=[h.to_dict() for h in highlights],
            )
            db.add(clip)
            db.commit()
            db.refresh(clip)
            return clip.id

    def set_highlight_order(self, project_id: int, order: Sequence[str]) -> None:
        with SessionLocal() as db:
            project = db.get(ProjectModel, project_id)
            if not project:
                raise ValueError(f"Project {project_id} not found")
            project.highlight_order = list(order)
            db.commit()
