from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import cv2
import numpy as np
from rich.progress import Progress

from imagesegmenter.console import console
from imagesegmenter.io.image import crop_image
from imagesegmenter.segment import Segment, get_bounding_rect

# category -> file name prefix, the category is also the subdirectory name
EXPORT_CATEGORIES: Dict[str, str] = {
    "correct": "c_",
    "merged": "m_",
    "partial_sets": "p_",
}


class ExportError(Exception):
    """Raised after an export run in which one or more files could not be written."""

    def __init__(self, failures: List[Tuple[Path, str]]):
        self.failures = failures
        lines = [f"  {path}: {reason}" for path, reason in failures[:10]]
        if len(failures) > 10:
            lines.append(f"  ... and {len(failures) - 10} more")
        super().__init__(f"{len(failures)} file(s) could not be exported:\n" + "\n".join(lines))


def export_filename(prefix: str, index: int, export_format: str = "jpg") -> str:
    """Sequential, zero-padded file name, e.g. c_00000003.jpg"""
    return f"{prefix}{index:08d}.{export_format}"


def render_segments(image: np.ndarray, segments: Sequence[Segment], margin: int) -> np.ndarray:
    """
    Isolate one or more segments from the image.

    The union of the bounding rectangles is grown by `margin` and clipped to
    the image. Pixels inside the segment polygons are copied from the image,
    everything else is white.

    Parameters
    ----------
    image : np.ndarray
        Source image, HxW or HxWxC uint8.
    segments : Sequence[Segment]
        Segments rendered together into a single crop.
    margin : int
        Padding in pixels around the combined bounding rectangle.

    Returns
    -------
    np.ndarray
        The composited crop with the same channel count as `image`.
    """
    h, w = image.shape[:2]
    rect = get_bounding_rect(segments).expand(margin).clip(w, h)

    mask = np.zeros((rect.height, rect.width), dtype=np.uint8)
    for s in segments:
        if not s.contour:
            continue
        cv2.drawContours(mask, [s.points()], -1, 255, thickness=cv2.FILLED, offset=(-rect.x, -rect.y))

    output = np.full((rect.height, rect.width) + image.shape[2:], 255, dtype=np.uint8)
    crop = crop_image(image, rect)
    inside = mask > 0
    output[inside] = crop[inside]
    return output


def save_segments_to_file(image: np.ndarray, segments: Sequence[Segment], path: Path, margin: int) -> None:
    """Render `segments` and write them to `path`, raising OSError when writing fails."""
    output = render_segments(image, segments, margin)
    if output.size == 0:
        raise OSError("empty crop")
    try:
        ok = cv2.imwrite(str(path), output)
    except cv2.error as e:
        raise OSError(str(e)) from e
    if not ok:
        raise OSError("cv2.imwrite failed")


def export_segments(
    image: np.ndarray,
    correct: Sequence[Segment],
    merged: Sequence[Segment],
    partial_sets: Sequence[Sequence[Segment]],
    output_dir: Path,
    margin: int,
    export_format: str = "jpg",
) -> Dict[str, List[Path]]:
    """
    Export all curated segments below `output_dir`.

    Correct and merged segments are written one file each, every partial set is
    written as a single file. Numbering restarts at 0 for every category and
    follows the order of the collections. Segments without a contour are
    skipped with a warning and take no number. Every file is attempted;
    failures are collected and raised together as an ExportError at the end.

    Returns a mapping category -> written file paths.
    """
    output_dir = Path(output_dir)
    jobs = {
        "correct": [[s] for s in correct],
        "merged": [[s] for s in merged],
        "partial_sets": [list(group) for group in partial_sets],
    }

    written: Dict[str, List[Path]] = {category: [] for category in EXPORT_CATEGORIES}
    failures: List[Tuple[Path, str]] = []

    with Progress(console=console) as progress:
        for category, prefix in EXPORT_CATEGORIES.items():
            groups = jobs[category]
            task = progress.add_task(f"[cyan]Exporting {category}...", total=len(groups))
            directory = output_dir / category
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                console.print(f"Could not create directory {directory}: {e}", style="error")

            index = 0
            for k, group in enumerate(groups):
                # empty contours have no pixels and a placeholder rectangle at the origin
                group = [s for s in group if s.contour]
                if not group:
                    console.print(f"   Skipping {category}[{k}]: no contour to export", style="warning")
                    progress.advance(task, 1)
                    continue
                path = directory / export_filename(prefix, index, export_format)
                index += 1
                try:
                    save_segments_to_file(image, group, path, margin)
                    written[category].append(path)
                except OSError as e:
                    failures.append((path, str(e)))
                progress.advance(task, 1)

    for category, paths in written.items():
        console.print(f"   Exported {len(paths)} file(s) to {output_dir / category}", style="info")

    if failures:
        raise ExportError(failures)
    return written
