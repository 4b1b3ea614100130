from dataclasses import replace
from typing import List

import cv2
import numpy as np

from imagesegmenter.console import console
from imagesegmenter.processing.basestage import BaseStage, CONFIRM_KEY
from imagesegmenter.segment import Segment
from imagesegmenter.state import Step


def extract_segments(mask: np.ndarray, min_area: int) -> List[Segment]:
    """
    Turn a foreground mask into candidate segments.

    Only outer boundaries are used, holes and regions nested inside them are
    ignored. Boundaries enclosing less than `min_area` pixels are dropped.
    The result is sorted by area, largest first; equal areas keep detection
    order. An empty mask gives an empty list.
    """
    mask = np.asarray(mask)
    if mask.dtype != np.uint8:
        mask = (mask > 0).astype(np.uint8) * 255

    contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

    segments = []
    for c in contours:
        s = Segment.from_cv_contour(c)
        if s.area < min_area:
            continue
        segments.append(s)

    # stable, so ties stay in detection order
    segments.sort(key=lambda s: s.area, reverse=True)
    return segments


def filter_by_area(segments: List[Segment], min_area: int) -> List[Segment]:
    return [s for s in segments if s.area >= min_area]


class SegmentDetectionStage(BaseStage):
    """Detect all candidate segments in the thresholded mask and put them on the todo list.

    With `confirm` an overview with every candidate outlined is shown together
    with a min-area trackbar until the operator confirms with SPACE.
    """

    step = Step.SEGMENT_DETECTION
    title = "Step 2. Segment detection"

    def __init__(self, *args, mask: np.ndarray, confirm: bool = True, **kwargs):
        self.mask = mask
        self.confirm = confirm
        super().__init__(*args, **kwargs)

    def apply(self) -> List[Segment]:
        self.state.step = self.step
        min_area = self.config.min_area

        if not self.confirm:
            console.print("Performing segment detection ...", style="info")
            segments = extract_segments(self.mask, min_area)
        else:
            self.banner(">> Detecting all individual segments after thresholding.",
                        ">> Adjust the min area, press [SPACE] to confirm")
            candidates = extract_segments(self.mask, 0)
            max_area = max([min_area, 1] + [s.area for s in candidates])

            with self.viewer.window(self.window_name) as name:
                self.viewer.add_trackbar(name, "min-area", min_area, max_area)
                shown_area = None
                while True:
                    min_area = self.viewer.get_trackbar(name, "min-area")
                    if min_area != shown_area:
                        segments = filter_by_area(candidates, min_area)
                        overview = self.renderer.segmentation_overview(
                            self.image, segments, self.config.outline_thickness
                        )
                        shown_area = min_area
                    self.viewer.show(name, overview)
                    if self.viewer.poll_key(self.config.poll_interval_ms) == CONFIRM_KEY:
                        break

            if min_area != self.config.min_area:
                console.print(f"Min area changed from {self.config.min_area} to {min_area}", style="info")
                self.state.config = replace(self.config, min_area=min_area)

        self.state.todo = segments
        self.state.tagging_cursor = 0
        console.print(f"Detected {len(segments)} segments", style="success")
        return segments
