from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from imagesegmenter.config import SegmenterConfig
from imagesegmenter.segment import Segment, Tag, segments_from_list, segments_to_list


class Step(Enum):
    """Steps in the image segmentation procedure, in execution order."""
    THRESHOLDING = 0
    SEGMENT_DETECTION = 1
    SEGMENT_TAGGING = 2
    SEGMENT_MERGING = 3
    SEGMENT_EXPORTING = 4
    FINISHED = 5

    def next(self) -> "Step":
        return Step(min(self.value + 1, Step.FINISHED.value))


@dataclass
class PipelineState:
    """Complete working state of a segmentation session.

    All collections are owned by the pipeline and handed by reference to the
    stage that is currently running.
    """
    image_file: Path
    config: SegmenterConfig = field(default_factory=SegmenterConfig)
    step: Step = Step.THRESHOLDING
    todo: List[Segment] = field(default_factory=list)
    correct: List[Segment] = field(default_factory=list)
    merged: List[Segment] = field(default_factory=list)
    partial_sets: List[List[Segment]] = field(default_factory=list)

    # position inside the tagging and merging stages, needed to resume mid-stage
    tagging_cursor: int = 0
    working_set: Optional[List[Segment]] = None
    merge_pointer: int = 0

    def __post_init__(self):
        self.image_file = Path(self.image_file)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step.name,
            "image_file": str(self.image_file),
            "config": self.config.to_dict(),
            "tagging": {"cursor": self.tagging_cursor},
            "merging": {
                "working_set": None if self.working_set is None else segments_to_list(self.working_set),
                "pointer": self.merge_pointer,
            },
            "segments": {
                "todo": segments_to_list(self.todo),
                "correct": segments_to_list(self.correct),
                "merged": segments_to_list(self.merged),
                "partial_sets": [segments_to_list(s) for s in self.partial_sets],
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PipelineState":
        segments = data["segments"]
        working_set = data["merging"]["working_set"]
        state = cls(
            image_file=Path(data["image_file"]),
            config=SegmenterConfig.from_dict(data["config"]),
            step=Step[data["step"]],
            todo=segments_from_list(segments["todo"]),
            correct=segments_from_list(segments["correct"]),
            merged=segments_from_list(segments["merged"]),
            partial_sets=[segments_from_list(s) for s in segments["partial_sets"]],
            tagging_cursor=int(data["tagging"]["cursor"]),
            working_set=None if working_set is None else segments_from_list(working_set),
            merge_pointer=int(data["merging"]["pointer"]),
        )
        if not (0 <= state.tagging_cursor <= len(state.todo)):
            raise ValueError(f"Tagging cursor {state.tagging_cursor} out of range for {len(state.todo)} segments")
        if state.todo and not (0 <= state.merge_pointer < len(state.todo)) and state.working_set is not None:
            raise ValueError(f"Merge pointer {state.merge_pointer} out of range for {len(state.todo)} segments")
        state.check_tags()
        return state

    def check_tags(self) -> None:
        """Raise ValueError if a segment carries a tag its collection cannot hold at the current step."""
        def expect(segments: List[Segment], tag: Tag, where: str) -> None:
            for i, s in enumerate(segments):
                if s.tag is not tag:
                    raise ValueError(f"{where}[{i}] is tagged {s.tag.name}, expected {tag.name}")

        expect(self.correct, Tag.CORRECT, "correct")
        expect(self.merged, Tag.MERGED, "merged")
        for k, partial_set in enumerate(self.partial_sets):
            expect(partial_set, Tag.PARTIAL, f"partial_sets[{k}]")

        if self.step.value <= Step.SEGMENT_TAGGING.value:
            if self.working_set is not None:
                raise ValueError(f"Merge working set present at step {self.step.name}")
            for i, s in enumerate(self.todo):
                if (i < self.tagging_cursor) != s.tag.is_terminal:
                    raise ValueError(
                        f"todo[{i}] is tagged {s.tag.name} with the tagging cursor at {self.tagging_cursor}"
                    )
        else:
            expect(self.todo, Tag.PARTIAL, "todo")
            expect(self.working_set or [], Tag.PARTIAL, "working_set")
