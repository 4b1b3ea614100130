from .image import read_image, ensure_grayscale, crop_image, ImageLoadError
from .export import export_segments, render_segments, export_filename, ExportError, EXPORT_CATEGORIES
from .progress import save_progress, load_progress, ProgressFileError

__all__ = [
    "read_image", "ensure_grayscale", "crop_image", "ImageLoadError",
    "export_segments", "render_segments", "export_filename", "ExportError", "EXPORT_CATEGORIES",
    "save_progress", "load_progress", "ProgressFileError",
]
