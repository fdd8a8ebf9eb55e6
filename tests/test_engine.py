import unittest
from unittest.mock import patch
import sys
import os
import tempfile

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from secscan.config import ScanConfig
from secscan.engine import Engine
from secscan.exceptions import ScanError
from secscan.models import ScanResult
from secscan.scanners import (CodeSecurityScanner, ConfigurationSecurityScanner,
                              NetworkSecurityScanner, ToolSecurityScanner,
                              WebSecurityScanner)
from secscan.scanners.base import SecurityScanner


class ExplodingScanner(SecurityScanner):
    NAME = "exploding"

    def execute(self, target, result):
        raise RuntimeError("boom")


class TestEngine(unittest.TestCase):
    def setUp(self):
        self.engine = Engine(ScanConfig())

    def test_full_on_path_runs_source_scanners(self):
        with tempfile.TemporaryDirectory() as tmp:
            self.assertEqual(self.engine.scanners_for("full", tmp),
                             [CodeSecurityScanner, ConfigurationSecurityScanner])

    def test_full_on_host_runs_network_scanners(self):
        self.assertEqual(self.engine.scanners_for("full", "example.com"),
                         [NetworkSecurityScanner, WebSecurityScanner])

    def test_tools_action_is_explicit(self):
        with tempfile.TemporaryDirectory() as tmp:
            self.assertEqual(self.engine.scanners_for("tools", tmp), [ToolSecurityScanner])

    def test_unknown_action(self):
        with self.assertRaises(ScanError):
            self.engine.scanners_for("quantum", "example.com")

    def test_empty_target(self):
        with self.assertRaises(ScanError):
            self.engine.run("code", "")

    def test_run_collects_results(self):
        with tempfile.TemporaryDirectory() as tmp:
            with open(os.path.join(tmp, "a.py"), "w", encoding="utf-8") as f:
                f.write("eval(x)\n")
            os.chmod(os.path.join(tmp, "a.py"), 0o644)
            report = self.engine.run("full", tmp)

        self.assertEqual([r.scanner for r in report.results], ["code", "config"])
        self.assertEqual(len(report.vulnerabilities), 1)
        self.assertIsNotNone(report.finished_at)

    def test_scanner_exceptions_are_captured(self):
        result = ExplodingScanner(ScanConfig()).run("anything")
        self.assertIsInstance(result, ScanResult)
        self.assertEqual(result.errors, ["RuntimeError: boom"])
        self.assertIsNotNone(result.finished_at)

    @patch.dict('secscan.engine.SCANNERS', {"network": ExplodingScanner})
    def test_engine_survives_failing_scanner(self):
        report = self.engine.run("network", "example.com")
        self.assertEqual(report.errors, ["exploding: RuntimeError: boom"])


if __name__ == '__main__':
    unittest.main()
