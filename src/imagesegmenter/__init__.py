"""imagesegmenter - curate glyph datasets from scanned pages.

Candidate regions are detected in a thresholded image, tagged by an operator,
partial fragments are merged into sets and everything is exported as cropped,
masked image files.
"""
from pathlib import Path

__version__ = "0.1.0"

OUTPUT_PATH = Path("output")
