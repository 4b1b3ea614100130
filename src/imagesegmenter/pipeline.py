from pathlib import Path
from typing import Dict, List, Optional

import numpy as np

from imagesegmenter.config import SegmenterConfig
from imagesegmenter.console import console
from imagesegmenter.io import load_progress, read_image, save_progress
from imagesegmenter.processing import (
    PartialSegmentMergingStage,
    SegmentDetectionStage,
    SegmentExportingStage,
    SegmentTaggingStage,
    ThresholdingStage,
    threshold_mask,
)
from imagesegmenter.state import PipelineState, Step
from imagesegmenter.visualization import OpenCVViewer, PreviewRenderer, Viewer


class ImageSegmenter:
    """
    Runs the segmentation procedure on one image.

    Steps: thresholding -> segment detection -> segment tagging -> partial
    segment merging -> segment exporting. Each step works on the shared
    PipelineState; the stage marker is updated on entry and, if a save file is
    set, the progress is saved after every step so a session can be resumed.

    Example
    -------
        segmenter = ImageSegmenter(Path("page.png"), SegmenterConfig(threshold=180))
        segmenter.run()
    """

    def __init__(
        self,
        image_file: Path,
        config: Optional[SegmenterConfig] = None,
        viewer: Optional[Viewer] = None,
        confirm: bool = True,
        save_file: Optional[Path] = None,
    ):
        """
        @param image_file: image containing the characters to be segmented
        @param config: session settings, defaults if None
        @param viewer: presentation backend, live OpenCV windows if None
        @param confirm: show thresholding and detection for confirmation (with live trackbars)
        @param save_file: where progress is saved, None disables saving
        """
        config = (config or SegmenterConfig()).validate()
        self.image: np.ndarray = read_image(image_file)
        self.state = PipelineState(image_file=Path(image_file), config=config)
        self.viewer = viewer if viewer is not None else OpenCVViewer()
        self.confirm = confirm
        self.save_file = Path(save_file) if save_file is not None else None
        self.renderer = PreviewRenderer.from_seed(config.preview_seed)
        self.mask: Optional[np.ndarray] = None
        self.exported: Dict[str, List[Path]] = {}

    def load_progress(self, progress_file: Path) -> PipelineState:
        """Resume a previous session. The configuration stored in the file replaces the current one."""
        state = load_progress(progress_file)
        if state.image_file.name != self.state.image_file.name:
            console.print(
                f"Progress file was recorded for '{state.image_file}', continuing with '{self.state.image_file}'",
                style="warning",
            )
        state.image_file = self.state.image_file
        self.state = state
        self.renderer = PreviewRenderer.from_seed(state.config.preview_seed)
        self.mask = None
        if self.save_file is None:
            self.save_file = Path(progress_file)
        return state

    def save_progress(self, path: Optional[Path] = None) -> Optional[Path]:
        path = path or self.save_file
        if path is None:
            return None
        return save_progress(self.state, path)

    def _stage_kwargs(self) -> dict:
        return dict(
            state=self.state,
            image=self.image,
            viewer=self.viewer,
            renderer=self.renderer,
            save_callback=self.save_progress if self.save_file is not None else None,
        )

    def run_step(self, step: Step) -> None:
        if step is Step.THRESHOLDING:
            self.mask = ThresholdingStage(**self._stage_kwargs(), confirm=self.confirm).apply()
        elif step is Step.SEGMENT_DETECTION:
            if self.mask is None:
                self.mask = threshold_mask(self.image, self.state.config.threshold)
            SegmentDetectionStage(**self._stage_kwargs(), mask=self.mask, confirm=self.confirm).apply()
        elif step is Step.SEGMENT_TAGGING:
            SegmentTaggingStage(**self._stage_kwargs()).apply()
        elif step is Step.SEGMENT_MERGING:
            PartialSegmentMergingStage(**self._stage_kwargs()).apply()
        elif step is Step.SEGMENT_EXPORTING:
            self.exported = SegmentExportingStage(**self._stage_kwargs()).apply()
        else:
            raise ValueError(f"Nothing to run for step {step.name}")

    def run(self) -> PipelineState:
        """Run all remaining steps, starting at the current stage marker."""
        if self.state.step is Step.FINISHED:
            console.print("Session already finished, nothing to do.", style="warning")
            return self.state

        while self.state.step is not Step.FINISHED:
            step = self.state.step
            self.run_step(step)
            self.state.step = step.next()
            self.save_progress()

        console.print("Image segmentation finished.", style="success")
        return self.state
