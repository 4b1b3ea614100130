from __future__ import annotations

import shutil
import tempfile
import unittest
from pathlib import Path

import cv2
import numpy as np

from imagesegmenter.io import ExportError, export_filename, export_segments, render_segments
from imagesegmenter.segment import Segment, Tag


def _square(x: int, y: int, size: int, tag: Tag = Tag.CORRECT) -> Segment:
    return Segment(contour=[(x, y), (x + size, y), (x + size, y + size), (x, y + size)], tag=tag)


class TestRenderSegments(unittest.TestCase):
    def setUp(self) -> None:
        # uniform gray so every white pixel in a crop comes from the mask
        self.image = np.full((40, 40, 3), 50, dtype=np.uint8)

    def test_pixels_outside_contour_are_white(self) -> None:
        segment = _square(10, 10, 9)
        crop = render_segments(self.image, [segment], margin=2)

        self.assertEqual(crop.shape, (14, 14, 3))
        self.assertEqual(crop[0, 0].tolist(), [255, 255, 255])
        self.assertEqual(crop[13, 13].tolist(), [255, 255, 255])
        self.assertEqual(crop[2, 2].tolist(), [50, 50, 50])
        self.assertEqual(crop[7, 7].tolist(), [50, 50, 50])

    def test_crop_is_clipped_to_image(self) -> None:
        crop = render_segments(self.image, [_square(0, 0, 4)], margin=2)
        self.assertEqual(crop.shape, (7, 7, 3))

        crop = render_segments(self.image, [_square(35, 35, 4)], margin=2)
        self.assertEqual(crop.shape, (7, 7, 3))

    def test_partial_set_uses_union_of_rectangles(self) -> None:
        a = _square(10, 10, 4, Tag.PARTIAL)
        b = _square(20, 20, 4, Tag.PARTIAL)
        crop = render_segments(self.image, [a, b], margin=0)

        self.assertEqual(crop.shape, (15, 15, 3))
        self.assertEqual(crop[2, 2].tolist(), [50, 50, 50])
        self.assertEqual(crop[12, 12].tolist(), [50, 50, 50])
        # between the two fragments
        self.assertEqual(crop[7, 7].tolist(), [255, 255, 255])

    def test_grayscale_image(self) -> None:
        gray = np.full((40, 40), 50, dtype=np.uint8)
        crop = render_segments(gray, [_square(10, 10, 9)], margin=1)
        self.assertEqual(crop.shape, (12, 12))
        self.assertEqual(crop[0, 0], 255)
        self.assertEqual(crop[5, 5], 50)


class TestExportSegments(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = Path(tempfile.mkdtemp())
        self.image = np.full((60, 60, 3), 50, dtype=np.uint8)

    def tearDown(self) -> None:
        shutil.rmtree(self.tmp, ignore_errors=True)

    def test_filename(self) -> None:
        self.assertEqual(export_filename("c_", 3), "c_00000003.jpg")
        self.assertEqual(export_filename("p_", 12, "png"), "p_00000012.png")

    def test_correct_segments_only(self) -> None:
        correct = [_square(5, 5, 6), _square(20, 5, 6), _square(35, 5, 6)]
        written = export_segments(self.image, correct, [], [], self.tmp, margin=2, export_format="png")

        names = sorted(p.name for p in (self.tmp / "correct").iterdir())
        self.assertEqual(names, ["c_00000000.png", "c_00000001.png", "c_00000002.png"])
        self.assertEqual(written["correct"], [self.tmp / "correct" / n for n in names])
        self.assertEqual(list((self.tmp / "merged").iterdir()), [])
        self.assertEqual(list((self.tmp / "partial_sets").iterdir()), [])

        exported = cv2.imread(str(self.tmp / "correct" / "c_00000000.png"))
        self.assertEqual(exported.shape, (11, 11, 3))
        self.assertEqual(exported[0, 0].tolist(), [255, 255, 255])
        self.assertEqual(exported[5, 5].tolist(), [50, 50, 50])

    def test_all_categories(self) -> None:
        merged = [_square(5, 30, 6, Tag.MERGED)]
        partial_sets = [
            [_square(5, 45, 4, Tag.PARTIAL), _square(15, 45, 4, Tag.PARTIAL)],
            [_square(30, 45, 4, Tag.PARTIAL)],
        ]
        written = export_segments(self.image, [], merged, partial_sets, self.tmp, margin=0, export_format="png")

        self.assertEqual([p.name for p in written["merged"]], ["m_00000000.png"])
        self.assertEqual([p.name for p in written["partial_sets"]], ["p_00000000.png", "p_00000001.png"])
        first_set = cv2.imread(str(written["partial_sets"][0]))
        self.assertEqual(first_set.shape, (5, 15, 3))

    def test_segments_without_contour_are_skipped(self) -> None:
        correct = [Segment(tag=Tag.CORRECT), _square(20, 5, 6)]
        partial_sets = [
            [Segment(tag=Tag.PARTIAL)],
            [Segment(tag=Tag.PARTIAL), _square(30, 30, 4, Tag.PARTIAL)],
        ]
        written = export_segments(self.image, correct, [], partial_sets, self.tmp, margin=0, export_format="png")

        self.assertEqual([p.name for p in written["correct"]], ["c_00000000.png"])
        self.assertEqual([p.name for p in written["partial_sets"]], ["p_00000000.png"])
        # the empty member does not stretch the crop to the origin
        exported = cv2.imread(str(written["partial_sets"][0]))
        self.assertEqual(exported.shape, (5, 5, 3))

    def test_failures_are_collected(self) -> None:
        blocked = self.tmp / "not_a_directory"
        blocked.write_text("")
        correct = [_square(5, 5, 6), _square(20, 5, 6)]

        with self.assertRaises(ExportError) as cm:
            export_segments(self.image, correct, [], [], blocked, margin=2, export_format="png")

        self.assertEqual(len(cm.exception.failures), 2)
        self.assertEqual(cm.exception.failures[0][0].name, "c_00000000.png")


if __name__ == "__main__":
    unittest.main()
