from dataclasses import replace

import cv2
import numpy as np

from imagesegmenter.console import console
from imagesegmenter.io.image import ensure_grayscale
from imagesegmenter.processing.basestage import BaseStage, CONFIRM_KEY
from imagesegmenter.state import Step


def threshold_mask(gray: np.ndarray, threshold: int) -> np.ndarray:
    """Foreground (ink) mask: 255 where the luminosity is at or below `threshold`, 0 elsewhere."""
    _, mask = cv2.threshold(ensure_grayscale(gray), threshold, 255, cv2.THRESH_BINARY_INV)
    return mask


class ThresholdingStage(BaseStage):
    """Separate foreground from background.

    With `confirm` the mask is shown with a threshold trackbar and recomputed
    live until the operator confirms with SPACE; the confirmed threshold is
    written back into the session configuration.
    """

    step = Step.THRESHOLDING
    title = "Step 1. Thresholding"

    def __init__(self, *args, confirm: bool = True, **kwargs):
        self.confirm = confirm
        super().__init__(*args, **kwargs)

    def apply(self) -> np.ndarray:
        self.state.step = self.step
        gray = ensure_grayscale(self.image)
        threshold = self.config.threshold

        if not self.confirm:
            console.print("Performing thresholding ...", style="info")
            return threshold_mask(gray, threshold)

        self.banner(">> Separating background and foreground segments.",
                    ">> Adjust the threshold, press [SPACE] to continue")
        with self.viewer.window(self.window_name) as name:
            self.viewer.add_trackbar(name, "threshold", threshold, 255)
            while True:
                threshold = self.viewer.get_trackbar(name, "threshold")
                mask = threshold_mask(gray, threshold)
                self.viewer.show(name, mask)
                if self.viewer.poll_key(self.config.poll_interval_ms) == CONFIRM_KEY:
                    break

        if threshold != self.config.threshold:
            console.print(f"Threshold changed from {self.config.threshold} to {threshold}", style="info")
            self.state.config = replace(self.config, threshold=threshold)
        return mask
