from enum import Enum, unique


@unique
class ExportType(str, Enum):
    STITCHED = "stitched"
    INDIVIDUAL = "individual"


@unique
class ExportStage(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    EXTRACTING = "extracting"
    PROCESSING = "processing"
    STITCHING = "stitching"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STAGES

    @property
    def rank(self) -> int:
        """Position in the lifecycle; a job's stage rank never decreases."""
        return STAGE_RANK[self]


TERMINAL_STAGES = frozenset({ExportStage.COMPLETED, ExportStage.FAILED, ExportStage.CANCELLED})

# extracting (stitched) and processing (individual) are alternatives at the same depth
STAGE_RANK = {
    ExportStage.PENDING: 0,
    ExportStage.PREPARING: 1,
    ExportStage.EXTRACTING: 2,
    ExportStage.PROCESSING: 2,
    ExportStage.STITCHING: 3,
    ExportStage.COMPLETED: 4,
    ExportStage.FAILED: 4,
    ExportStage.CANCELLED: 4,
}
