from abc import ABC, abstractmethod
from typing import List, Optional
from .models import HighlightSegment, ProjectInfo


class IProjectRepository(ABC):
    """
    Read access to the project context an export needs.
    """

    @abstractmethod
    def get_project(self, project_id: int) -> Optional[ProjectInfo]:
        pass

    @abstractmethod
    def get_highlight_segments(self, project_id: int) -> List[HighlightSegment]:
        """
        Every highlight across all of the project's clips,
        in natural order (clip id, then the clip's own highlight order).
        """
        pass
