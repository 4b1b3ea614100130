from enum import Enum
from typing import Dict, List, Optional

from imagesegmenter.console import console
from imagesegmenter.processing.basestage import BaseStage
from imagesegmenter.segment import Segment, Tag
from imagesegmenter.state import Step
from imagesegmenter.visualization import COLOR_HIGHLIGHT


class TagCommand(Enum):
    """Operator commands of the tagging stage, the value is the key."""
    NOISE = "n"
    PARTIAL = "p"
    MERGED = "m"
    CORRECT = "c"
    UNDO = "z"


COMMAND_TAGS: Dict[TagCommand, Tag] = {
    TagCommand.NOISE: Tag.NOISE,
    TagCommand.PARTIAL: Tag.PARTIAL,
    TagCommand.MERGED: Tag.MERGED,
    TagCommand.CORRECT: Tag.CORRECT,
}

# where each terminal tag goes after tagging, None means dropped
TAG_DESTINATIONS: Dict[Tag, Optional[str]] = {
    Tag.NOISE: None,
    Tag.PARTIAL: "todo",
    Tag.MERGED: "merged",
    Tag.CORRECT: "correct",
}


class UntaggedSegmentError(Exception):
    """Raised when a segment is still UNDEFINED after the tagging stage."""


class SegmentTagger:
    """
    Walks once over the segments, assigning a terminal tag to each.

    Undo moves the cursor back by one and resets the tag of the segment it
    lands on to UNDEFINED, so every segment before the cursor is tagged and
    every segment from the cursor on is not. Undo at the start does nothing.
    """

    def __init__(self, segments: List[Segment], cursor: int = 0):
        if not 0 <= cursor <= len(segments):
            raise ValueError(f"Cursor {cursor} out of range for {len(segments)} segments")
        self.segments = segments
        self.cursor = cursor

    @property
    def done(self) -> bool:
        return self.cursor == len(self.segments)

    @property
    def current(self) -> Optional[Segment]:
        return None if self.done else self.segments[self.cursor]

    def apply(self, command: TagCommand) -> Optional[Segment]:
        """Apply one operator command. Returns the segment that was tagged or untagged, if any."""
        if command is TagCommand.UNDO:
            if self.cursor == 0:
                return None
            self.cursor -= 1
            segment = self.segments[self.cursor]
            segment.tag = Tag.UNDEFINED
            return segment

        if self.done:
            raise ValueError("All segments are already tagged.")
        segment = self.segments[self.cursor]
        segment.tag = COMMAND_TAGS[command]
        self.cursor += 1
        return segment


def reconcile_tags(todo: List[Segment], correct: List[Segment], merged: List[Segment]) -> None:
    """
    Distribute tagged segments in a single, order preserving pass.

    Correct and merged segments are appended to `correct` and `merged`, noise
    is dropped and partial segments stay in `todo`. An UNDEFINED segment
    raises UntaggedSegmentError before any collection is modified.
    """
    bins: Dict[str, List[Segment]] = {"todo": [], "merged": [], "correct": []}
    for i, s in enumerate(todo):
        if s.tag is Tag.UNDEFINED:
            raise UntaggedSegmentError(f"Segment {i} (area {s.area}) has not been tagged.")
        destination = TAG_DESTINATIONS[s.tag]
        if destination is not None:
            bins[destination].append(s)

    correct.extend(bins["correct"])
    merged.extend(bins["merged"])
    todo[:] = bins["todo"]


class SegmentTaggingStage(BaseStage):
    step = Step.SEGMENT_TAGGING
    title = "Step 3. Segment tagging"

    def apply(self) -> None:
        self.state.step = self.step
        self.banner(
            ">> Tagging segments, use the following keys:",
            "   [N] Noise segment (will be discarded)",
            "   [P] Partial segment (will be combinable with other partial segments)",
            "   [M] Merged segment (will be stored separately so it can be split)",
            "   [C] Correct segment (will be stored as is)",
            "",
            "   [Z] Undo (move back in the tagging sequence)",
            "   [S] Save progress   [Q] Save progress and quit",
        )

        tagger = SegmentTagger(self.state.todo, self.state.tagging_cursor)
        keys = {c.value for c in TagCommand}
        n = len(tagger.segments)

        with self.viewer.window(self.window_name):
            while not tagger.done:
                i = tagger.cursor
                preview, preview_contour = self.renderer.segment_previews(
                    self.image, [tagger.current], [COLOR_HIGHLIGHT], self.config.surroundings_size
                )
                command = TagCommand(self.wait_for_key([preview, preview_contour], keys))
                tagger.apply(command)
                self.state.tagging_cursor = tagger.cursor

                if command is TagCommand.UNDO:
                    if i > 0:
                        console.print(f">> Segment [{i}/{n}]: ... undoing previous tag")
                else:
                    console.print(f">> Segment [{i + 1}/{n}]: {command.name}")

        reconcile_tags(self.state.todo, self.state.correct, self.state.merged)
        self.state.tagging_cursor = 0
        console.print(
            f"Tagging done: {len(self.state.correct)} correct, {len(self.state.merged)} merged, "
            f"{len(self.state.todo)} partial",
            style="success",
        )
