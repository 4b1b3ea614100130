from .basestage import BaseStage, SessionInterrupted
from .thresholding import threshold_mask, ThresholdingStage
from .segment_detection import extract_segments, SegmentDetectionStage
from .segment_tagging import SegmentTagger, TagCommand, reconcile_tags, UntaggedSegmentError, SegmentTaggingStage
from .segment_merging import PartialMerger, MergeCommand, PartialSegmentMergingStage
from .segment_exporting import SegmentExportingStage

__all__ = [
    "BaseStage", "SessionInterrupted",
    "threshold_mask", "ThresholdingStage",
    "extract_segments", "SegmentDetectionStage",
    "SegmentTagger", "TagCommand", "reconcile_tags", "UntaggedSegmentError", "SegmentTaggingStage",
    "PartialMerger", "MergeCommand", "PartialSegmentMergingStage",
    "SegmentExportingStage",
]
