import argparse
import os
import tempfile
import unittest
from unittest import mock

from parameterized import parameterized

from pilotcorr import cli, stimulus

class CliTests(unittest.TestCase):

    @parameterized.expand([
        ["decimal",  "400000000",  400_000_000],
        ["negative", "-1",         -1],
        ["hex",      "0xFFFFFFFF", 0xFFFF_FFFF],
        ["min",      "-2147483648", -(1 << 31)],
    ])
    def test_threshold_arg(self, name, text, expected):
        self.assertEqual(cli.threshold_arg(text), expected)

    @parameterized.expand([
        ["garbage", "lots"],
        ["too_big", "0x100000000"],
        ["too_small", "-2147483649"],
    ])
    def test_threshold_arg_rejects(self, name, text):
        with self.assertRaises(argparse.ArgumentTypeError):
            cli.threshold_arg(text)

    def test_model_action(self):
        self.assertEqual(cli.main(["model", "--seed", "4", "--lead", "20"]), 0)

    def test_sim_action_matches_model(self):
        with tempfile.TemporaryDirectory() as tmp:
            self.assertEqual(cli.main(["sim", "--seed", "2", "--payload", "8",
                                       "--dst", tmp, "--trace-vcd"]), 0)
            self.assertTrue(os.path.exists(os.path.join(tmp, "pilot_detector.vcd")))

    def test_sim_from_stimulus_file(self):
        samples, _ = stimulus.pilot_burst(lead=4, payload=10, seed=9)
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "stim.txt")
            stimulus.save(path, samples)
            self.assertEqual(cli.main(["sim", "--stimulus", path, "--verbose"]), 0)

    def test_build_action(self):
        with tempfile.TemporaryDirectory() as tmp:
            self.assertEqual(cli.main(["build", "--dst", tmp]), 0)
            self.assertTrue(os.path.exists(os.path.join(tmp, "pilot_detector.v")))

    def test_threshold_from_environment(self):
        with mock.patch.dict(os.environ, {"PILOTCORR_THRESHOLD": "0x7FFFFFFF"}):
            with self.assertLogs(level="INFO") as logs:
                self.assertEqual(cli.main(["model"]), 0)
        self.assertTrue(any("no detection" in line for line in logs.output))

    def test_bad_arguments(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "stim.txt")
            with open(path, "w") as f:
                f.write("12\nnope\n")
            for argv in [["sim", "--stimulus", path],
                         ["model", "--threshold", "0x1FFFFFFFF"],
                         ["model", "--noise", "9000"],
                         ["flash"]]:
                with self.assertRaises(SystemExit) as cm:
                    cli.main(argv)
                self.assertEqual(cm.exception.code, 2)

    def test_first_mismatch(self):
        self.assertIsNone(cli.first_mismatch([1, 2, 3], [1, 2, 3]))
        self.assertEqual(cli.first_mismatch([1, 2, 3], [1, 5, 3]), 1)
