from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Highlight:
    """
    A user-selected time range on a video clip.
    Supplied by the editor; the export engine never mutates it.
    """
    id: str
    start: float
    end: float
    color_id: Optional[str] = None
    text: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Highlight":
        return cls(
            id=str(data["id"]),
            start=float(data["start"]),
            end=float(data["end"]),
            color_id=data.get("colorId", data.get("color")),
            text=data.get("text", "") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "start": self.start, "end": self.end, "colorId": self.color_id, "text": self.text}


@dataclass(frozen=True)
class HighlightSegment:
    """
    A highlight resolved against its clip: everything an export needs for one unit of work.
    """
    highlight_id: str
    video_path: str
    start: float
    end: float
    video_clip_id: int
    video_clip_name: str
    color_id: Optional[str] = None
    text: str = ""


@dataclass(frozen=True)
class ProjectInfo:
    id: int
    name: str
    path: str
    description: Optional[str] = None
    highlight_order: List[str] = field(default_factory=list)
