"""Presentation backends.

The stages talk to a Viewer to show frames and read operator keys. The
OpenCVViewer drives live HighGUI windows; the ScriptedViewer replays a fixed
key sequence without opening any window, e.g. to replay a session headless.
"""
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

import cv2
import numpy as np


class Viewer(ABC):
    """Display surfaces and keyboard polling used by the interactive stages."""

    @contextmanager
    def window(self, name: str) -> Iterator[str]:
        """Create a window for the lifetime of the block, it is destroyed however the block exits."""
        self.create_window(name)
        try:
            yield name
        finally:
            self.destroy_window(name)

    @abstractmethod
    def create_window(self, name: str) -> None:
        ...

    @abstractmethod
    def destroy_window(self, name: str) -> None:
        ...

    @abstractmethod
    def show(self, name: str, frame: np.ndarray) -> None:
        ...

    @abstractmethod
    def poll_key(self, timeout_ms: int) -> Optional[str]:
        """Wait up to `timeout_ms` for a key press. Returns None if no key arrived."""

    @abstractmethod
    def add_trackbar(self, window: str, name: str, value: int, maximum: int) -> None:
        ...

    @abstractmethod
    def get_trackbar(self, window: str, name: str) -> int:
        ...


class OpenCVViewer(Viewer):
    """Live keyboard and trackbar interaction through OpenCV HighGUI windows."""

    def create_window(self, name: str) -> None:
        cv2.namedWindow(name, cv2.WINDOW_NORMAL)

    def destroy_window(self, name: str) -> None:
        cv2.destroyWindow(name)

    def show(self, name: str, frame: np.ndarray) -> None:
        cv2.imshow(name, frame)

    def poll_key(self, timeout_ms: int) -> Optional[str]:
        """Plain character keys only, special keys (arrows, Home, ...) are reported as no key."""
        key = cv2.waitKeyEx(timeout_ms)
        if key == -1 or key > 0xFF:
            return None
        return chr(key).lower()

    def add_trackbar(self, window: str, name: str, value: int, maximum: int) -> None:
        # positions are read back with get_trackbar, no callback needed
        cv2.createTrackbar(name, window, value, maximum, lambda _: None)

    def get_trackbar(self, window: str, name: str) -> int:
        return cv2.getTrackbarPos(name, window)


class ScriptExhausted(RuntimeError):
    """Raised when a ScriptedViewer is polled after its last key."""


class ScriptedViewer(Viewer):
    """
    Replays a fixed sequence of keys instead of reading the keyboard.

    A None entry in `keys` stands for a poll without key press. Trackbars keep
    the value they were created with unless overridden in `trackbars`
    (trackbar name -> value).
    """

    def __init__(self, keys: Iterable[Optional[str]], trackbars: Optional[Dict[str, int]] = None):
        self.keys: List[Optional[str]] = list(keys)
        self.trackbar_overrides = dict(trackbars or {})
        self.trackbars: Dict[Tuple[str, str], int] = {}
        self.open_windows: List[str] = []
        self.window_log: List[Tuple[str, str]] = []
        self.frames_shown: Dict[str, int] = {}
        self.last_frames: Dict[str, np.ndarray] = {}

    def create_window(self, name: str) -> None:
        self.open_windows.append(name)
        self.window_log.append(("create", name))

    def destroy_window(self, name: str) -> None:
        self.open_windows.remove(name)
        self.window_log.append(("destroy", name))

    def show(self, name: str, frame: np.ndarray) -> None:
        self.frames_shown[name] = self.frames_shown.get(name, 0) + 1
        self.last_frames[name] = frame

    def poll_key(self, timeout_ms: int) -> Optional[str]:
        if not self.keys:
            raise ScriptExhausted("No keys left in the script.")
        return self.keys.pop(0)

    def add_trackbar(self, window: str, name: str, value: int, maximum: int) -> None:
        value = self.trackbar_overrides.get(name, value)
        self.trackbars[(window, name)] = max(0, min(value, maximum))

    def get_trackbar(self, window: str, name: str) -> int:
        return self.trackbars[(window, name)]
