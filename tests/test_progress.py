from __future__ import annotations

import json
import shutil
import tempfile
import unittest
from pathlib import Path

from imagesegmenter.config import SegmenterConfig
from imagesegmenter.io import ProgressFileError, load_progress, save_progress
from imagesegmenter.io.progress import PROGRESS_FORMAT, progress_to_json
from imagesegmenter.segment import Segment, Tag
from imagesegmenter.state import PipelineState, Step


def _square(x: int, tag: Tag) -> Segment:
    return Segment(contour=[(x, 0), (x + 5, 0), (x + 5, 5), (x, 5)], tag=tag)


def _state() -> PipelineState:
    return PipelineState(
        image_file=Path("pages/page_001.png"),
        config=SegmenterConfig(threshold=150, min_area=5, export_format="png", preview_seed=7),
        step=Step.SEGMENT_MERGING,
        todo=[_square(0, Tag.PARTIAL), _square(10, Tag.PARTIAL)],
        correct=[_square(20, Tag.CORRECT)],
        merged=[_square(30, Tag.MERGED)],
        partial_sets=[[_square(40, Tag.PARTIAL), _square(50, Tag.PARTIAL)]],
        working_set=[_square(60, Tag.PARTIAL)],
        merge_pointer=1,
    )


class TestProgressFile(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = Path(tempfile.mkdtemp())
        self.path = self.tmp / "progress" / "session.json"

    def tearDown(self) -> None:
        shutil.rmtree(self.tmp, ignore_errors=True)

    def test_save_and_load(self) -> None:
        state = _state()
        save_progress(state, self.path)
        self.assertEqual(load_progress(self.path), state)
        # no temporary files left behind
        self.assertEqual([p.name for p in self.path.parent.iterdir()], ["session.json"])

    def test_document_layout(self) -> None:
        data = json.loads(progress_to_json(_state()))
        self.assertEqual(data["format"], PROGRESS_FORMAT)
        self.assertEqual(data["version"], 1)
        self.assertEqual(data["step"], "SEGMENT_MERGING")
        self.assertEqual(data["segments"]["correct"][0]["tag"], "CORRECT")
        self.assertEqual(data["config"]["output_dir"], "output")

    def _write(self, text: str) -> Path:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(text)
        return self.path

    def test_missing_file(self) -> None:
        with self.assertRaises(ProgressFileError):
            load_progress(self.tmp / "missing.json")

    def test_invalid_json(self) -> None:
        with self.assertRaises(ProgressFileError):
            load_progress(self._write("{not json"))

    def test_wrong_format_or_version(self) -> None:
        data = json.loads(progress_to_json(_state()))
        data["version"] = 2
        with self.assertRaises(ProgressFileError):
            load_progress(self._write(json.dumps(data)))

        data["version"] = 1
        data["format"] = "something-else"
        with self.assertRaises(ProgressFileError):
            load_progress(self._write(json.dumps(data)))

    def test_inconsistent_content(self) -> None:
        data = json.loads(progress_to_json(_state()))
        del data["segments"]
        with self.assertRaises(ProgressFileError):
            load_progress(self._write(json.dumps(data)))

        data = json.loads(progress_to_json(_state()))
        data["segments"]["todo"][0]["area"] = 1
        with self.assertRaises(ProgressFileError):
            load_progress(self._write(json.dumps(data)))

        data = json.loads(progress_to_json(_state()))
        data["tagging"]["cursor"] = 3
        with self.assertRaises(ProgressFileError):
            load_progress(self._write(json.dumps(data)))

        data = json.loads(progress_to_json(_state()))
        data["config"]["threshold"] = 300
        with self.assertRaises(ProgressFileError):
            load_progress(self._write(json.dumps(data)))

    def test_tags_must_fit_the_step(self) -> None:
        data = json.loads(progress_to_json(_state()))
        data["segments"]["todo"][1]["tag"] = "CORRECT"
        with self.assertRaises(ProgressFileError):
            load_progress(self._write(json.dumps(data)))

        data = json.loads(progress_to_json(_state()))
        data["merging"]["working_set"][0]["tag"] = "UNDEFINED"
        with self.assertRaises(ProgressFileError):
            load_progress(self._write(json.dumps(data)))

        data = json.loads(progress_to_json(_state()))
        data["segments"]["merged"][0]["tag"] = "NOISE"
        with self.assertRaises(ProgressFileError):
            load_progress(self._write(json.dumps(data)))

    def test_tagging_cursor_must_match_tags(self) -> None:
        state = PipelineState(
            image_file=Path("page.png"),
            step=Step.SEGMENT_TAGGING,
            todo=[_square(0, Tag.NOISE), _square(10, Tag.UNDEFINED), _square(20, Tag.UNDEFINED)],
            tagging_cursor=1,
        )
        save_progress(state, self.path)
        self.assertEqual(load_progress(self.path), state)

        data = json.loads(progress_to_json(state))
        data["segments"]["todo"][2]["tag"] = "PARTIAL"
        with self.assertRaises(ProgressFileError):
            load_progress(self._write(json.dumps(data)))

        data = json.loads(progress_to_json(state))
        data["tagging"]["cursor"] = 2
        with self.assertRaises(ProgressFileError):
            load_progress(self._write(json.dumps(data)))


class TestSegmenterConfig(unittest.TestCase):
    def test_defaults(self) -> None:
        config = SegmenterConfig().validate()
        self.assertEqual(config.threshold, 192)
        self.assertEqual(config.min_area, 20)
        self.assertEqual(config.crop_margin, 2)
        self.assertEqual(config.output_dir, Path("output"))

    def test_invalid_values(self) -> None:
        for kwargs in (
            {"threshold": 256},
            {"min_area": -1},
            {"outline_thickness": 0},
            {"surroundings_size": 0},
            {"crop_margin": -2},
            {"export_format": "bmp"},
        ):
            with self.subTest(**kwargs), self.assertRaises(ValueError):
                SegmenterConfig(**kwargs).validate()

    def test_dict_round_trip(self) -> None:
        config = SegmenterConfig(output_dir="out/dir", preview_seed=3)
        self.assertEqual(SegmenterConfig.from_dict(config.to_dict()), config)

    def test_unknown_key(self) -> None:
        with self.assertRaises(TypeError):
            SegmenterConfig.from_dict({"thresh": 100})


if __name__ == "__main__":
    unittest.main()
