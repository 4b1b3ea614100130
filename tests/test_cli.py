from __future__ import annotations

import shutil
import tempfile
import unittest
from pathlib import Path

import cv2
import numpy as np
from click.testing import CliRunner

from imagesegmenter.cli import main
from imagesegmenter.config import SegmenterConfig
from imagesegmenter.io import save_progress
from imagesegmenter.state import PipelineState, Step


class TestCli(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = Path(tempfile.mkdtemp())
        self.runner = CliRunner()
        self.image_file = self.tmp / "page.png"
        cv2.imwrite(str(self.image_file), np.full((20, 20, 3), 255, dtype=np.uint8))

    def tearDown(self) -> None:
        shutil.rmtree(self.tmp, ignore_errors=True)

    def test_missing_argument(self) -> None:
        result = self.runner.invoke(main, [])
        self.assertEqual(result.exit_code, 2)

    def test_invalid_option(self) -> None:
        result = self.runner.invoke(main, [str(self.image_file), "--threshold", "300"])
        self.assertEqual(result.exit_code, 2)

        result = self.runner.invoke(main, [str(self.image_file), "--export-format", "bmp"])
        self.assertEqual(result.exit_code, 2)

    def test_missing_image(self) -> None:
        result = self.runner.invoke(main, [str(self.tmp / "missing.png")])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("ERROR", result.output)

    def test_unreadable_progress_file(self) -> None:
        progress_file = self.tmp / "progress.json"
        progress_file.write_text("{broken")
        result = self.runner.invoke(main, [str(self.image_file), "--progress-file", str(progress_file)])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("ERROR", result.output)

    def test_resume_finished_session_reports_ignored_options(self) -> None:
        progress_file = self.tmp / "progress.json"
        state = PipelineState(image_file=self.image_file, config=SegmenterConfig(), step=Step.FINISHED)
        save_progress(state, progress_file)

        result = self.runner.invoke(
            main, [str(self.image_file), "--progress-file", str(progress_file), "--threshold", "100"]
        )
        self.assertEqual(result.exit_code, 0)
        self.assertIn("ignoring", result.output)
        self.assertIn("threshold", result.output)
        self.assertIn("already finished", result.output)


if __name__ == "__main__":
    unittest.main()
