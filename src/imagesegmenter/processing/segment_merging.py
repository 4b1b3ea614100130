from enum import Enum
from typing import List, Optional

from imagesegmenter.console import console
from imagesegmenter.processing.basestage import BaseStage
from imagesegmenter.segment import Segment, Tag
from imagesegmenter.state import Step
from imagesegmenter.visualization import COLOR_HIGHLIGHT, COLOR_PROPOSAL


class MergeCommand(Enum):
    """Operator commands of the merging stage, the value is the key."""
    ACCEPT = "a"
    REJECT = "r"
    COMPLETE = "c"


class PartialMerger:
    """
    Groups partial segments into partial sets.

    The first remaining partial segment seeds a working set. The remaining
    segments are proposed one after another, cycling back to the first after
    the last: ACCEPT moves the proposal into the working set, REJECT moves on
    to the next proposal and COMPLETE closes the working set. A working set is
    also closed when no partial segments are left. Closed sets are appended to
    `partial_sets` and the next seed is taken until `todo` is empty.

    `todo` and `partial_sets` are modified in place.
    """

    def __init__(
        self,
        todo: List[Segment],
        partial_sets: List[List[Segment]],
        working_set: Optional[List[Segment]] = None,
        pointer: int = 0,
    ):
        for s in todo + (working_set or []):
            if s.tag is not Tag.PARTIAL:
                raise ValueError(f"Only partial segments can be merged, got {s.tag.name}")
        self.todo = todo
        self.partial_sets = partial_sets
        self.working_set = working_set
        self.pointer = pointer
        self.closed: List[List[Segment]] = []
        self._settle()

    @property
    def done(self) -> bool:
        return self.working_set is None and not self.todo

    @property
    def candidate(self) -> Optional[Segment]:
        """Segment currently proposed to join the working set."""
        if self.working_set is None or not self.todo:
            return None
        return self.todo[self.pointer]

    def _close_set(self) -> None:
        self.partial_sets.append(self.working_set)
        self.closed.append(self.working_set)
        self.working_set = None
        self.pointer = 0

    def _settle(self) -> None:
        """Advance until a proposal is pending or nothing is left to merge."""
        while True:
            if self.working_set is not None:
                if self.todo:
                    if self.pointer >= len(self.todo):
                        self.pointer = 0
                    return
                self._close_set()
            if not self.todo:
                return
            self.working_set = [self.todo.pop(0)]
            self.pointer = 0

    def apply(self, command: MergeCommand) -> List[List[Segment]]:
        """Apply one operator command. Returns the partial sets closed as a consequence."""
        if self.done:
            raise ValueError("No partial segments left to merge.")
        self.closed = []

        if command is MergeCommand.ACCEPT:
            self.working_set.append(self.todo.pop(self.pointer))
            if self.pointer >= len(self.todo):
                self.pointer = 0
        elif command is MergeCommand.REJECT:
            self.pointer += 1
            if self.pointer >= len(self.todo):
                self.pointer = 0
        elif command is MergeCommand.COMPLETE:
            self._close_set()
        else:
            raise ValueError(f"Unknown merge command: {command}")

        self._settle()
        return self.closed


class PartialSegmentMergingStage(BaseStage):
    step = Step.SEGMENT_MERGING
    title = "Step 4. Partial segment merging"

    def apply(self) -> None:
        self.state.step = self.step
        self.banner(
            ">> Merging partial segments. The partial segments in [BLUE] are looking for "
            "partial segments to merge with. The partial segment in [GREEN] proposes to merge. "
            "Use the following keys:",
            "   [A] Accept segment (green will be merged with blue)",
            "   [R] Reject segment (green will not be merged with blue)",
            "   [C] Complete merging (blue is complete and will be saved)",
            "   [S] Save progress   [Q] Save progress and quit",
        )

        merger = PartialMerger(self.state.todo, self.state.partial_sets,
                               self.state.working_set, self.state.merge_pointer)
        self._sync(merger)
        keys = {c.value for c in MergeCommand}

        with self.viewer.window(self.window_name):
            while not merger.done:
                candidate = merger.candidate
                console.print(f"   Proposing partial segment [{merger.pointer + 1}/{len(merger.todo)}]")
                members = merger.working_set + [candidate]
                colors = [COLOR_HIGHLIGHT] * len(merger.working_set) + [COLOR_PROPOSAL]
                preview, preview_contours = self.renderer.segment_previews(
                    self.image, members, colors, self.config.surroundings_size
                )

                command = MergeCommand(self.wait_for_key([preview, preview_contours], keys))
                closed = merger.apply(command)
                self._sync(merger)

                if command is MergeCommand.ACCEPT:
                    console.print("   ACCEPTED")
                elif command is MergeCommand.REJECT:
                    console.print("   REJECTED")
                for k, partial_set in enumerate(closed):
                    explicit = command is MergeCommand.COMPLETE and k == 0
                    reason = "" if explicit else " (no partial segments left)"
                    console.print(f"   PARTIAL SET COMPLETED{reason}: {len(partial_set)} segment(s)")

        console.print(f"Merging done: {len(self.state.partial_sets)} partial set(s)", style="success")

    def _sync(self, merger: PartialMerger) -> None:
        self.state.working_set = merger.working_set
        self.state.merge_pointer = merger.pointer
