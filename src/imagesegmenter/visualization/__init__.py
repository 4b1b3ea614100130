from .preview import PreviewRenderer, COLOR_HIGHLIGHT, COLOR_PROPOSAL
from .viewer import Viewer, OpenCVViewer, ScriptedViewer, ScriptExhausted

__all__ = [
    "PreviewRenderer", "COLOR_HIGHLIGHT", "COLOR_PROPOSAL",
    "Viewer", "OpenCVViewer", "ScriptedViewer", "ScriptExhausted",
]
