from pathlib import Path

import cv2
import numpy as np

from imagesegmenter.console import console
from imagesegmenter.segment import Rect


class ImageLoadError(Exception):
    """Raised when the source image cannot be read."""


def read_image(image_path: Path) -> np.ndarray:
    """Read the source image as a 3-channel BGR uint8 array."""
    image_path = Path(image_path)
    if not image_path.is_file():
        raise ImageLoadError(f"Image file does not exist: '{image_path}'")

    image = cv2.imread(str(image_path), cv2.IMREAD_COLOR)
    if image is None:
        raise ImageLoadError(f"Image file could not be decoded: '{image_path}'")

    console.print(f"Loaded image '{image_path.name}' ({image.shape[1]}x{image.shape[0]})", style="info")
    return image


def ensure_grayscale(image: np.ndarray) -> np.ndarray:
    """Convert a BGR(A) or grayscale image to a 2D uint8 grayscale image."""
    if image.ndim == 2:
        return image if image.dtype == np.uint8 else np.clip(image, 0, 255).astype(np.uint8)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def crop_image(image: np.ndarray, rect: Rect) -> np.ndarray:
    """Return a cropped copy of `image`, the rectangle is clipped to the image first."""
    r = rect.clip(image.shape[1], image.shape[0])
    return image[r.y:r.bottom, r.x:r.right].copy()
