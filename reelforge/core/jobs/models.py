from datetime import datetime, timezone
from sqlalchemy import Column, String, Integer, Float, Text, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from reelforge.core.database.base import Base
from reelforge.core.enums import ExportType, ExportStage


def utc_now():
    return datetime.now(timezone.utc)


class ExportJobModel(Base):
    """
    Durable record of one export job.
    Authoritative across restarts; the in-memory registry only routes cancellation.
    """
    __tablename__ = "export_jobs"

    job_id = Column(String, primary_key=True)
    export_type = Column(SQLEnum(ExportType), nullable=False)

    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)

    # Destination folder at creation; the final file or directory once completed
    output_path = Column(String, nullable=False)

    stage = Column(SQLEnum(ExportStage), default=ExportStage.PENDING, nullable=False, index=True)
    progress = Column(Float, default=0.0, nullable=False)
    current_file = Column(String, nullable=True)
    total_files = Column(Integer, default=0, nullable=False)
    processed_files = Column(Integer, default=0, nullable=False)
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    project = relationship("ProjectModel", back_populates="export_jobs")
