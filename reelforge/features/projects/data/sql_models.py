from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Text, Float, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from reelforge.core.database.base import Base


def utc_now():
    return datetime.now(timezone.utc)


class ProjectModel(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    path = Column(String, nullable=False)

    # Saved export order: list of highlight ids
    highlight_order = Column(JSON, default=list)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    video_clips = relationship(
        "VideoClipModel",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="VideoClipModel.id"
    )

    # Linked to reelforge/core/jobs/models.py
    export_jobs = relationship(
        "ExportJobModel",
        back_populates="project",
        cascade="all, delete-orphan"
    )


class VideoClipModel(Base):
    """
    One source video inside a project.
    Highlights live on the clip as a JSON list of
    {"id", "start", "end", "colorId", "text"} objects.
    """
    __tablename__ = "video_clips"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)

    name = Column(String, nullable=False)
    file_path = Column(String, nullable=False)
    duration = Column(Float, nullable=True)

    highlights = Column(JSON, default=list)

    created_at = Column(DateTime(timezone=True), default=utc_now)

    project = relationship("ProjectModel", back_populates="video_clips")
