import unittest
from unittest.mock import patch
import json
import subprocess
import sys
import os
import tempfile

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from secscan.config import ScanConfig
from secscan.models import Severity
from secscan.scanners.tools import (ToolSecurityScanner, parse_bandit, parse_eslint,
                                    parse_semgrep, parse_trivy)

BANDIT_OUTPUT = {
    "errors": [],
    "results": [
        {
            "code": "4 def run(cmd):\n5     subprocess.call(cmd, shell=True)\n",
            "filename": "src/app.py",
            "issue_confidence": "HIGH",
            "issue_cwe": {"id": 78, "link": "https://cwe.mitre.org/data/definitions/78.html"},
            "issue_severity": "HIGH",
            "issue_text": "subprocess call with shell=True identified, security issue.",
            "line_number": 5,
            "test_id": "B602",
            "test_name": "subprocess_popen_with_shell_equals_true",
        },
        {
            "code": "9 DB_PASSWORD = \"hunter22secret\"\n",
            "filename": "src/settings.py",
            "issue_confidence": "MEDIUM",
            "issue_cwe": {"id": 259, "link": "https://cwe.mitre.org/data/definitions/259.html"},
            "issue_severity": "LOW",
            "issue_text": "Possible hardcoded password: 'hunter22secret'",
            "line_number": 9,
            "test_id": "B105",
            "test_name": "hardcoded_password_string",
        },
    ],
}

SEMGREP_OUTPUT = {
    "errors": [],
    "results": [
        {
            "check_id": "javascript.browser.security.insecure-document-method",
            "path": "src/static/app.js",
            "start": {"line": 12, "col": 5},
            "end": {"line": 12, "col": 30},
            "extra": {
                "message": "User controlled data in innerHTML is an anti-pattern that can lead to XSS",
                "severity": "ERROR",
                "lines": "    el.innerHTML = input;",
                "metadata": {"cwe": ["CWE-79: Improper Neutralization of Input During Web Page Generation"]},
            },
        },
        {
            "check_id": "python.lang.best-practice.open-never-closed",
            "path": "src/io.py",
            "start": {"line": 3, "col": 1},
            "extra": {"message": "file object opened without a context manager", "severity": "INFO"},
        },
    ],
}

TRIVY_OUTPUT = {
    "SchemaVersion": 2,
    "ArtifactName": "src",
    "Results": [
        {
            "Target": "requirements.txt",
            "Class": "lang-pkgs",
            "Type": "pip",
            "Vulnerabilities": [
                {
                    "VulnerabilityID": "CVE-2023-32681",
                    "PkgName": "requests",
                    "InstalledVersion": "2.19.0",
                    "FixedVersion": "2.31.0",
                    "Severity": "MEDIUM",
                    "Title": "Unintended leak of Proxy-Authorization header",
                    "CweIDs": ["CWE-200"],
                },
                {
                    "VulnerabilityID": "CVE-2099-0001",
                    "PkgName": "legacylib",
                    "InstalledVersion": "0.1",
                    "Severity": "UNKNOWN",
                    "Description": "No fix available",
                },
            ],
        },
        {"Target": "package-lock.json", "Class": "lang-pkgs", "Type": "npm", "Vulnerabilities": None},
    ],
}

ESLINT_OUTPUT = [
    {
        "filePath": "/work/src/static/app.js",
        "messages": [
            {"ruleId": "security/detect-eval-with-expression", "severity": 2, "message": "eval with argument of type Identifier", "line": 7},
            {"ruleId": "no-unused-vars", "severity": 1, "message": "'x' is defined but never used", "line": 2},
            {"ruleId": "security/detect-non-literal-fs-filename", "severity": 1, "message": "Found readFile from package \"fs\" with non literal argument", "line": 9},
        ],
    }
]


def completed(stdout="", returncode=0, stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TestToolParsers(unittest.TestCase):
    def test_bandit(self):
        issues = parse_bandit(BANDIT_OUTPUT)

        self.assertEqual([(i["file"], i["line"], i["severity"]) for i in issues],
                         [("src/app.py", 5, Severity.HIGH), ("src/settings.py", 9, Severity.LOW)])
        self.assertEqual(issues[0]["cwe"], "CWE-78")
        self.assertEqual(issues[0]["title"], "Bandit B602: subprocess_popen_with_shell_equals_true")
        self.assertEqual(issues[0]["confidence"], 0.9)
        self.assertNotIn("hunter22secret", issues[1]["evidence"])

    def test_semgrep(self):
        issues = parse_semgrep(SEMGREP_OUTPUT)

        self.assertEqual([i["severity"] for i in issues], [Severity.HIGH, Severity.LOW])
        self.assertEqual(issues[0]["cwe"], "CWE-79")
        self.assertEqual(issues[0]["line"], 12)
        self.assertIsNone(issues[1]["cwe"])

    def test_trivy(self):
        issues = parse_trivy(TRIVY_OUTPUT)

        self.assertEqual(len(issues), 2)
        self.assertEqual(issues[0]["title"], "CVE-2023-32681 in requests")
        self.assertEqual(issues[0]["remediation"], "Upgrade requests from 2.19.0 to 2.31.0")
        self.assertEqual(issues[0]["file"], "requirements.txt")
        self.assertEqual(issues[1]["severity"], Severity.INFO)
        self.assertNotIn("remediation", issues[1])

    def test_eslint_keeps_only_security_rules(self):
        issues = parse_eslint(ESLINT_OUTPUT)

        self.assertEqual([(i["title"], i["severity"]) for i in issues], [
            ("ESLint security/detect-eval-with-expression", Severity.HIGH),
            ("ESLint security/detect-non-literal-fs-filename", Severity.MEDIUM),
        ])

    def test_empty_outputs(self):
        self.assertEqual(parse_bandit({"results": []}), [])
        self.assertEqual(parse_trivy({"SchemaVersion": 2}), [])
        self.assertEqual(parse_eslint([]), [])


class TestToolScanner(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = self.tmp.name

    def tearDown(self):
        self.tmp.cleanup()

    def scanner(self, **kwargs):
        return ToolSecurityScanner(ScanConfig(**kwargs))

    @patch('secscan.scanners.tools.subprocess.run')
    @patch('secscan.scanners.tools.shutil.which', return_value="/usr/bin/tool")
    def test_runs_selected_tools_and_merges_findings(self, mock_which, mock_run):
        outputs = {"bandit": BANDIT_OUTPUT, "trivy": TRIVY_OUTPUT}
        # bandit exits 1 when it reports issues
        mock_run.side_effect = lambda cmd, **kw: completed(json.dumps(outputs[cmd[0]]), returncode=1 if cmd[0] == "bandit" else 0)

        result = self.scanner(tools=["bandit", "trivy"]).run(self.root)

        self.assertEqual(result.errors, [])
        self.assertEqual(result.data["tools"], {"bandit": 2, "trivy": 2})
        self.assertEqual(sorted({v.category for v in result.vulnerabilities}),
                         ["Dependency-Vulnerability", "Python-Security"])
        self.assertTrue(all(v.scanner == "tools" for v in result.vulnerabilities))

        bandit_cmd = mock_run.call_args_list[0][0][0]
        self.assertEqual(bandit_cmd, ["bandit", "-r", self.root, "-f", "json", "-q"])
        self.assertTrue(mock_run.call_args_list[0][1]["capture_output"])
        self.assertEqual(mock_run.call_args_list[0][1]["timeout"], 300.0)

        upgrade = [v for v in result.vulnerabilities if v.title.startswith("CVE-2023-32681")][0]
        self.assertEqual(upgrade.remediation, "Upgrade requests from 2.19.0 to 2.31.0")
        self.assertEqual(upgrade.cwe, "CWE-200")

    @patch('secscan.scanners.tools.subprocess.run')
    @patch('secscan.scanners.tools.shutil.which')
    def test_missing_tool_is_skipped(self, mock_which, mock_run):
        mock_which.side_effect = lambda tool: None if tool == "semgrep" else "/usr/bin/" + tool
        mock_run.return_value = completed(json.dumps({"results": []}))

        result = self.scanner(tools=["semgrep", "bandit"]).run(self.root)

        self.assertEqual(result.errors, ["semgrep: not installed, skipped"])
        self.assertEqual(result.data["tools"], {"semgrep": None, "bandit": 0})
        self.assertEqual(mock_run.call_count, 1)

    @patch('secscan.scanners.tools.subprocess.run')
    @patch('secscan.scanners.tools.shutil.which', return_value="/usr/bin/tool")
    def test_profile_selects_tools(self, mock_which, mock_run):
        mock_run.return_value = completed("[]")

        result = self.scanner(tool_profile="web").run(self.root)

        self.assertEqual([c[0][0][0] for c in mock_run.call_args_list], ["eslint", "semgrep"])
        # semgrep gets a list where it expects a mapping
        self.assertEqual(result.data["tools"], {"eslint": 0, "semgrep": None})
        self.assertIn("semgrep: unexpected output format", result.errors[0])

    @patch('secscan.scanners.tools.subprocess.run')
    @patch('secscan.scanners.tools.shutil.which', return_value="/usr/bin/tool")
    def test_tool_failures_become_errors(self, mock_which, mock_run):
        mock_run.side_effect = [
            completed("", returncode=2, stderr="config not found"),
            completed("not json"),
            subprocess.TimeoutExpired(cmd="trivy", timeout=5),
        ]

        result = self.scanner(tools=["eslint", "semgrep", "trivy"], tool_timeout=5).run(self.root)

        self.assertEqual(result.vulnerabilities, [])
        self.assertEqual(len(result.errors), 3)
        self.assertIn("eslint: exited 2 without output: config not found", result.errors[0])
        self.assertIn("semgrep: unparseable JSON output", result.errors[1])
        self.assertEqual(result.errors[2], "trivy: timed out after 5s")

    def test_missing_path_is_skipped(self):
        result = self.scanner().run(os.path.join(self.root, "missing"))
        self.assertIn("does not exist", result.errors[0])


if __name__ == '__main__':
    unittest.main()
