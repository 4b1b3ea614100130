from abc import ABC, abstractmethod
from typing import Callable, Collection, List, Optional

import numpy as np

from imagesegmenter.config import SegmenterConfig
from imagesegmenter.console import console
from imagesegmenter.state import PipelineState, Step
from imagesegmenter.visualization import PreviewRenderer, Viewer

SAVE_KEY = "s"
QUIT_KEY = "q"
CONFIRM_KEY = " "


class SessionInterrupted(Exception):
    """Raised when the operator quits in the middle of a stage."""


class BaseStage(ABC):
    """
    Abstract base class for the steps of the segmentation procedure.

    A stage works on the shared PipelineState, which it receives by reference,
    and talks to the operator through a Viewer. Each stage owns exactly one
    window, which is created when the interactive part starts and destroyed
    when it ends.

    Subclasses set `step` and `title` and implement `apply`.
    """

    step: Step
    title: str

    def __init__(
        self,
        state: PipelineState,
        image: np.ndarray,
        viewer: Viewer,
        renderer: PreviewRenderer,
        save_callback: Optional[Callable[[], None]] = None,
    ) -> None:
        self.state = state
        self.image = image
        self.viewer = viewer
        self.renderer = renderer
        self.save_callback = save_callback

    @property
    def config(self) -> SegmenterConfig:
        return self.state.config

    @property
    def window_name(self) -> str:
        return f"ImageSegmenter ({self.title})"

    def banner(self, *lines: str) -> None:
        console.print(self.title, style="bold")
        console.print("================")
        for line in lines:
            console.print(line)
        console.print("================")

    def save(self) -> None:
        if self.save_callback is None:
            console.print("No save file configured, progress not saved.", style="warning")
            return
        self.save_callback()

    def wait_for_key(self, frames: List[np.ndarray], keys: Collection[str]) -> str:
        """
        Alternate between `frames` until one of `keys` is pressed and return it.

        The poll interval only paces the alternation. The save key stores the
        progress and keeps waiting, the quit key stores it and interrupts the
        session. Other keys are ignored.
        """
        i = 0
        while True:
            self.viewer.show(self.window_name, frames[i % len(frames)])
            key = self.viewer.poll_key(self.config.poll_interval_ms)
            if key in keys:
                return key
            if key == SAVE_KEY:
                self.save()
            elif key == QUIT_KEY:
                self.save()
                raise SessionInterrupted(f"Session stopped by operator during '{self.title}'.")
            i += 1

    @abstractmethod
    def apply(self):
        """Run the stage on the shared state."""
