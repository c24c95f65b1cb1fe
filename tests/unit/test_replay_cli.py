"""
Unit tests for the replay entry point.
"""

import io
import json
import math
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import patch

from tiltlevel.main import main, parse_args, read_samples


class TestReplayCli(unittest.TestCase):
    """Test cases for the tiltlevel-replay command."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name)
        self.samples = self.root / "samples.csv"
        rows = ["beta,gamma"] + ["1.5,-0.5"] * 30 + [","] + ["1.5,-0.5"] * 5
        self.samples.write_text("\n".join(rows) + "\n", encoding="utf-8")

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_read_samples_skips_header_and_keeps_gaps(self):
        samples = list(read_samples(self.samples))
        self.assertEqual(len(samples), 36)
        self.assertEqual(samples[0], (1.5, -0.5))
        self.assertTrue(math.isnan(samples[30][0]))

    def test_parse_args(self):
        args = parse_args(["data.csv", "--one-point-after", "5", "--state-file", "cal.json"])
        self.assertEqual(args.samples, Path("data.csv"))
        self.assertEqual(args.one_point_after, 5)
        self.assertEqual(args.state_file, Path("cal.json"))
        self.assertIsNone(args.log_level)

    def test_replay_with_calibration(self):
        state_file = self.root / "calibration.json"
        out = io.StringIO()

        with patch.dict(os.environ, {}, clear=True), redirect_stdout(out):
            code = main([str(self.samples), "--state-file", str(state_file),
                         "--one-point-after", "10", "--log-level", "WARNING"])

        self.assertEqual(code, 0)
        saved = json.loads(state_file.read_text(encoding="utf-8"))
        self.assertAlmostEqual(saved["calibPitch"], 1.5)
        self.assertAlmostEqual(saved["calibRoll"], -0.5)

        summary = json.loads(out.getvalue())
        self.assertEqual(summary["sample_count"], 35)
        self.assertAlmostEqual(summary["pitch"], 0.0)
        self.assertEqual(summary["mode"], "active")

    def test_missing_samples_file(self):
        out = io.StringIO()
        with patch.dict(os.environ, {}, clear=True), redirect_stdout(out):
            code = main([str(self.root / "missing.csv"), "--log-level", "CRITICAL"])
        self.assertEqual(code, 1)
        self.assertEqual(out.getvalue(), "")


if __name__ == "__main__":
    unittest.main()
