from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from imagesegmenter import OUTPUT_PATH

EXPORT_FORMATS = ("jpg", "png")


@dataclass(frozen=True)
class SegmenterConfig:
    """
    Settings of an image segmentation session.

    @param threshold: luminosity cutoff, pixels at or below it are foreground (ink)
    @param min_area: min area of a detected segment in pixels, smaller ones are dropped as speckles
    @param outline_thickness: thickness of the outline used to highlight segments in the overview
    @param surroundings_size: relative size of the surroundings shown around a segment preview
    @param output_dir: directory receiving the correct/, merged/ and partial_sets/ exports
    @param crop_margin: margin in pixels added around a segment when cropping it for export.
        Defaults to 2, the value of the command line entry point.
    @param export_format: file format of the exported crops
    @param poll_interval_ms: blink period of the previews while waiting for a key
    @param preview_seed: seed for the random preview colors, None for a random seed
    """

    threshold: int = 192
    min_area: int = 20
    outline_thickness: int = 4
    surroundings_size: float = 10.0
    output_dir: Path = field(default=OUTPUT_PATH)
    crop_margin: int = 2
    export_format: str = "jpg"
    poll_interval_ms: int = 250
    preview_seed: Optional[int] = None

    def __post_init__(self):
        # frozen dataclass, so go through object.__setattr__
        object.__setattr__(self, "output_dir", Path(self.output_dir))

    def validate(self) -> "SegmenterConfig":
        if not (0 <= self.threshold <= 255):
            raise ValueError(f"threshold must be within [0, 255], got {self.threshold}")
        if self.min_area < 0:
            raise ValueError(f"min_area must be >= 0, got {self.min_area}")
        if self.outline_thickness < 1:
            raise ValueError(f"outline_thickness must be >= 1, got {self.outline_thickness}")
        if self.surroundings_size <= 0:
            raise ValueError(f"surroundings_size must be > 0, got {self.surroundings_size}")
        if self.crop_margin < 0:
            raise ValueError(f"crop_margin must be >= 0, got {self.crop_margin}")
        if self.export_format not in EXPORT_FORMATS:
            raise ValueError(f"export_format must be one of {EXPORT_FORMATS}, got '{self.export_format}'")
        if self.poll_interval_ms <= 0:
            raise ValueError(f"poll_interval_ms must be > 0, got {self.poll_interval_ms}")
        return self

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["output_dir"] = str(self.output_dir)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SegmenterConfig":
        return cls(**data).validate()
