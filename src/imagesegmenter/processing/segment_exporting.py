from pathlib import Path
from typing import Dict, List

from imagesegmenter.io.export import export_segments
from imagesegmenter.processing.basestage import BaseStage
from imagesegmenter.state import Step


class SegmentExportingStage(BaseStage):
    """Write correct and merged segments and partial sets to the output directory."""

    step = Step.SEGMENT_EXPORTING
    title = "Step 5. Segment exporting"

    def apply(self) -> Dict[str, List[Path]]:
        self.state.step = self.step
        self.banner(">> Isolating segments and exporting to files.")
        return export_segments(
            self.image,
            self.state.correct,
            self.state.merged,
            self.state.partial_sets,
            output_dir=self.config.output_dir,
            margin=self.config.crop_margin,
            export_format=self.config.export_format,
        )
