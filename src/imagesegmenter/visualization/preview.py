from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from imagesegmenter.segment import Rect, Segment, get_bounding_rect

Color = Tuple[int, int, int]

# BGR
COLOR_HIGHLIGHT: Color = (255, 0, 0)
COLOR_PROPOSAL: Color = (0, 255, 0)


def _as_bgr(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    return image


def surroundings_rect(rect: Rect, surroundings_size: float, width: int, height: int) -> Rect:
    """Window around the center of `rect` showing `surroundings_size` times its larger side in each direction."""
    size = max(rect.width, rect.height)
    reach = max(int(size * surroundings_size), 1)
    x_center = rect.x + rect.width // 2
    y_center = rect.y + rect.height // 2
    return Rect(x_center - reach, y_center - reach, 2 * reach, 2 * reach).clip(width, height)


class PreviewRenderer:
    """Renders the operator previews.

    Random outline colors come from `rng` only, pass a seeded generator for
    reproducible previews. Nothing rendered here is used for the exports.
    """

    def __init__(self, rng: Optional[np.random.Generator] = None):
        self.rng = rng if rng is not None else np.random.default_rng()

    @classmethod
    def from_seed(cls, seed: Optional[int]) -> "PreviewRenderer":
        return cls(np.random.default_rng(seed))

    def random_color(self) -> Color:
        return tuple(int(c) for c in self.rng.integers(0, 255, size=3))

    def segmentation_overview(self, image: np.ndarray, segments: Sequence[Segment], line_thickness: int) -> np.ndarray:
        """Whole image with every segment outlined in its own random color."""
        result = _as_bgr(image).copy()
        for s in segments:
            if not s.contour:
                continue
            cv2.drawContours(result, [s.points()], -1, self.random_color(), line_thickness)
        return result

    def segment_previews(
        self,
        image: np.ndarray,
        segments: Sequence[Segment],
        colors: Sequence[Color],
        surroundings_size: float,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Crop the surroundings of one or more segments.

        Returns the plain crop and a copy in which segment i is filled with colors[i].
        """
        bgr = _as_bgr(image)
        h, w = bgr.shape[:2]
        window = surroundings_rect(get_bounding_rect(segments), surroundings_size, w, h)

        preview = bgr[window.y:window.bottom, window.x:window.right].copy()
        preview_contour = preview.copy()
        for s, color in zip(segments, colors):
            if not s.contour:
                continue
            cv2.drawContours(preview_contour, [s.points()], -1, color, thickness=cv2.FILLED,
                             offset=(-window.x, -window.y))
        return preview, preview_contour
