from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, NamedTuple, Sequence, Tuple, Any

import cv2
import numpy as np

Point = Tuple[int, int]


class Tag(Enum):
    """Classification of a segment. Everything but UNDEFINED is terminal."""
    UNDEFINED = "undefined"
    NOISE = "noise"
    PARTIAL = "partial"
    MERGED = "merged"
    CORRECT = "correct"

    @property
    def is_terminal(self) -> bool:
        return self is not Tag.UNDEFINED


class Rect(NamedTuple):
    """Axis-aligned rectangle in pixel coordinates, (x, y) is the top left corner."""
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def expand(self, margin: int) -> "Rect":
        """Grow the rectangle by `margin` pixels on all sides."""
        return Rect(self.x - margin, self.y - margin, self.width + 2 * margin, self.height + 2 * margin)

    def clip(self, width: int, height: int) -> "Rect":
        """Clip the rectangle to an image of the given size."""
        x1 = min(max(self.x, 0), width)
        y1 = min(max(self.y, 0), height)
        x2 = min(max(self.right, 0), width)
        y2 = min(max(self.bottom, 0), height)
        return Rect(x1, y1, x2 - x1, y2 - y1)

    def union(self, other: "Rect") -> "Rect":
        x1 = min(self.x, other.x)
        y1 = min(self.y, other.y)
        x2 = max(self.right, other.right)
        y2 = max(self.bottom, other.bottom)
        return Rect(x1, y1, x2 - x1, y2 - y1)


def contour_bounding_rect(contour: Sequence[Point]) -> Rect:
    if len(contour) == 0:
        return Rect()
    x, y, w, h = cv2.boundingRect(np.asarray(contour, dtype=np.int32).reshape(-1, 1, 2))
    return Rect(int(x), int(y), int(w), int(h))


def contour_area(contour: Sequence[Point]) -> int:
    """Enclosed polygon area in pixels, truncated to an integer."""
    if len(contour) < 3:
        return 0
    return int(cv2.contourArea(np.asarray(contour, dtype=np.int32).reshape(-1, 1, 2)))


@dataclass
class Segment:
    """One detected candidate region.

    The bounding rectangle and the area are derived from the contour once at
    creation and never change afterwards; only the tag is mutable.
    """
    contour: Tuple[Point, ...] = ()
    tag: Tag = Tag.UNDEFINED
    bounding_rectangle: Rect = field(init=False)
    area: int = field(init=False)

    def __post_init__(self):
        self.contour = tuple((int(x), int(y)) for x, y in self.contour)
        self.bounding_rectangle = contour_bounding_rect(self.contour)
        self.area = contour_area(self.contour)

    @classmethod
    def from_cv_contour(cls, contour: np.ndarray) -> "Segment":
        """Create an untagged segment from an OpenCV contour of shape (N, 1, 2)."""
        return cls(contour=[tuple(p) for p in np.asarray(contour).reshape(-1, 2)])

    def points(self) -> np.ndarray:
        """Contour as an int32 array of shape (N, 1, 2) as expected by OpenCV drawing functions."""
        return np.asarray(self.contour, dtype=np.int32).reshape(-1, 1, 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contour": [list(p) for p in self.contour],
            "bounding_rectangle": list(self.bounding_rectangle),
            "tag": self.tag.name,
            "area": self.area,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Segment":
        """Restore a segment, checking that the stored geometry matches the contour."""
        segment = cls(contour=[tuple(p) for p in data["contour"]], tag=Tag[data["tag"]])

        rect = Rect(*data["bounding_rectangle"])
        if rect != segment.bounding_rectangle:
            raise ValueError(f"Stored bounding rectangle {tuple(rect)} does not match contour "
                             f"({tuple(segment.bounding_rectangle)})")
        if int(data["area"]) != segment.area:
            raise ValueError(f"Stored area {data['area']} does not match contour area ({segment.area})")
        return segment


def get_bounding_rect(segments: Iterable[Segment]) -> Rect:
    """Smallest rectangle containing the bounding rectangles of all segments.

    Returns a zero-origin, zero-size rectangle when no segments are given.
    """
    result = None
    for s in segments:
        result = s.bounding_rectangle if result is None else result.union(s.bounding_rectangle)
    return result if result is not None else Rect()


def segments_to_list(segments: Iterable[Segment]) -> List[Dict[str, Any]]:
    return [s.to_dict() for s in segments]


def segments_from_list(data: Iterable[Dict[str, Any]]) -> List[Segment]:
    return [Segment.from_dict(d) for d in data]
