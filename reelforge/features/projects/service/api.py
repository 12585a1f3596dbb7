from typing import List, Optional, Sequence

from ..data.repository import SqlProjectRepo
from ..domain.interfaces import IProjectRepository
from ..domain.models import HighlightSegment


def apply_highlight_order(segments: Sequence[HighlightSegment], order: Sequence[str]) -> List[HighlightSegment]:
    """
    Orders segments by a saved list of highlight ids.
    Listed ids come first in listed order; the rest keep their natural order.
    Unknown ids in the order are ignored.
    """
    if not order:
        return list(segments)

    position = {highlight_id: i for i, highlight_id in enumerate(order)}
    listed = sorted(
        (s for s in segments if s.highlight_id in position),
        key=lambda s: position[s.highlight_id]
    )
    unlisted = [s for s in segments if s.highlight_id not in position]
    return listed + unlisted


def get_project_highlights_for_export(project_id: int,
                                      repo: Optional[IProjectRepository] = None) -> List[HighlightSegment]:
    """
    Public Service API: every highlight of a project, in export order.
    """
    repo = repo or SqlProjectRepo()
    project = repo.get_project(project_id)
    if not project:
        raise ValueError(f"Project {project_id} not found")

    segments = repo.get_highlight_segments(project_id)
    return apply_highlight_order(segments, project.highlight_order)
