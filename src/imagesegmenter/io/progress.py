"""Saving and loading of session progress.

The progress file is a versioned JSON document holding the stage marker, all
segment collections, the position inside the current stage and the
configuration, so a session can resume exactly where it was left.
"""
import json
import os
import tempfile
from pathlib import Path

from imagesegmenter.console import console
from imagesegmenter.state import PipelineState

PROGRESS_FORMAT = "imagesegmenter-progress"
PROGRESS_VERSION = 1


class ProgressFileError(Exception):
    """Raised when a progress file cannot be read or does not describe a valid session."""


def progress_to_json(state: PipelineState) -> str:
    data = {"format": PROGRESS_FORMAT, "version": PROGRESS_VERSION}
    data.update(state.to_dict())
    return json.dumps(data, indent=2)


def progress_from_json(text: str) -> PipelineState:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ProgressFileError(f"Progress file is not valid JSON: {e}") from e

    if not isinstance(data, dict) or data.get("format") != PROGRESS_FORMAT:
        raise ProgressFileError("Not an imagesegmenter progress file.")
    if data.get("version") != PROGRESS_VERSION:
        raise ProgressFileError(
            f"Unsupported progress file version {data.get('version')}, expected {PROGRESS_VERSION}."
        )

    try:
        return PipelineState.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise ProgressFileError(f"Invalid progress file content: {e}") from e


def save_progress(state: PipelineState, path: Path) -> Path:
    """Write the state to `path`, replacing any previous file atomically."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(progress_to_json(state))
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)
        raise

    console.print(f"Progress saved to {path} (step: {state.step.name})", style="info")
    return path


def load_progress(path: Path) -> PipelineState:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ProgressFileError(f"Progress file could not be read: '{path}' ({e})") from e

    state = progress_from_json(text)
    console.print(f"Progress loaded from {path}, resuming at step {state.step.name}", style="info")
    return state
