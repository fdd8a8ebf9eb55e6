import json
import os
import shutil
import subprocess
from typing import Any, Dict, List, Optional

from ..metadata import TOOL_PROFILES
from ..models import ScanResult, Severity
from ..utils import log_debug, log_info
from .base import SecurityScanner
from .code import safe_evidence

COMMANDS = {
    "bandit": lambda path: ["bandit", "-r", path, "-f", "json", "-q"],
    "eslint": lambda path: ["eslint", path, "--plugin", "security", "--format", "json"],
    "semgrep": lambda path: ["semgrep", "--config=auto", "--json", "--quiet", path],
    "trivy": lambda path: ["trivy", "fs", "--format", "json", "--quiet", path],
}

SEMGREP_SEVERITY = {"ERROR": Severity.HIGH, "WARNING": Severity.MEDIUM, "INFO": Severity.LOW}


def _severity(value: Any, default: Severity = Severity.INFO) -> Severity:
    try:
        return Severity.from_value(value)
    except ValueError:
        return default


def _cwe(value: Any) -> Optional[str]:
    """Normalizes 78, "CWE-78" and ["CWE-78: OS Command Injection"] to "CWE-78"."""
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, dict):
        value = value.get("id")
    if value in (None, ""):
        return None
    value = str(value).split(":")[0].strip()
    return value if value.upper().startswith("CWE-") else f"CWE-{value}"


def parse_bandit(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    issues = []
    for issue in data.get("results") or []:
        issues.append({
            "severity": _severity(issue.get("issue_severity")),
            "category": "Python-Security",
            "title": f"Bandit {issue.get('test_id')}: {issue.get('test_name')}",
            "description": issue.get("issue_text", ""),
            "file": issue.get("filename"),
            "line": issue.get("line_number"),
            "evidence": safe_evidence(issue.get("code") or ""),
            "cwe": _cwe(issue.get("issue_cwe")),
            "confidence": 0.9,
        })
    return issues


def parse_eslint(data: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    issues = []
    for report in data or []:
        for message in report.get("messages") or []:
            rule = message.get("ruleId") or ""
            # Only the security plugin's rules, not style warnings
            if not rule.startswith("security/"):
                continue
            issues.append({
                "severity": Severity.HIGH if message.get("severity") == 2 else Severity.MEDIUM,
                "category": "JavaScript-Security",
                "title": f"ESLint {rule}",
                "description": message.get("message", ""),
                "file": report.get("filePath"),
                "line": message.get("line"),
                "evidence": safe_evidence(message.get("source") or ""),
                "confidence": 0.85,
            })
    return issues


def parse_semgrep(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    issues = []
    for finding in data.get("results") or []:
        extra = finding.get("extra") or {}
        issues.append({
            "severity": SEMGREP_SEVERITY.get(str(extra.get("severity", "")).upper(), Severity.INFO),
            "category": "Static-Analysis",
            "title": f"Semgrep {finding.get('check_id')}",
            "description": extra.get("message", ""),
            "file": finding.get("path"),
            "line": (finding.get("start") or {}).get("line"),
            "evidence": safe_evidence(extra.get("lines") or ""),
            "cwe": _cwe((extra.get("metadata") or {}).get("cwe")),
            "confidence": 0.8,
        })
    return issues


def parse_trivy(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    issues = []
    for target in data.get("Results") or []:
        for vuln in target.get("Vulnerabilities") or []:
            pkg = vuln.get("PkgName", "")
            installed = vuln.get("InstalledVersion", "")
            fixed = vuln.get("FixedVersion")
            issue = {
                "severity": _severity(vuln.get("Severity")),
                "category": "Dependency-Vulnerability",
                "title": f"{vuln.get('VulnerabilityID')} in {pkg}",
                "description": vuln.get("Title") or vuln.get("Description") or "",
                "file": target.get("Target"),
                "evidence": f"{pkg} {installed}".strip(),
                "cwe": _cwe(vuln.get("CweIDs")),
                "confidence": 0.95,
            }
            if fixed:
                issue["remediation"] = f"Upgrade {pkg} from {installed} to {fixed}"
            issues.append(issue)
    return issues


PARSERS = {
    "bandit": parse_bandit,
    "eslint": parse_eslint,
    "semgrep": parse_semgrep,
    "trivy": parse_trivy,
}


class ToolSecurityScanner(SecurityScanner):
    NAME = "tools"
    DESCRIPTION = "Runs installed external scanners (bandit, eslint, semgrep, trivy) and merges their JSON output."

    def applies(self, target: str):
        if not os.path.exists(target):
            return f"path does not exist: {target}"
        return True

    def selected_tools(self) -> List[str]:
        """An explicit tool list replaces the profile."""
        return list(self.config.tools) or list(TOOL_PROFILES[self.config.tool_profile])

    def execute(self, target: str, result: ScanResult) -> None:
        result.data["tools"] = {}
        for tool in self.selected_tools():
            issues = self.run_tool(tool, target, result)
            # None marks a tool that was skipped or failed
            result.data["tools"][tool] = None if issues is None else len(issues)
            for issue in issues or []:
                result.add(self.finding(target, **issue))

    def run_tool(self, tool: str, target: str, result: ScanResult) -> Optional[List[Dict[str, Any]]]:
        if shutil.which(tool) is None:
            result.errors.append(f"{tool}: not installed, skipped")
            return None

        cmd = COMMANDS[tool](target)
        log_info(f"Running {tool}...")
        log_debug(" ".join(cmd))
        try:
            proc = subprocess.run(cmd, capture_output=True, text=True, timeout=self.config.tool_timeout)
        except subprocess.TimeoutExpired:
            result.errors.append(f"{tool}: timed out after {self.config.tool_timeout:g}s")
            return None
        except OSError as e:
            result.errors.append(f"{tool}: failed to start: {e}")
            return None

        # bandit and eslint exit 1 when they report issues; only missing output is a failure
        if not proc.stdout.strip():
            stderr = proc.stderr.strip()[:200]
            result.errors.append(f"{tool}: exited {proc.returncode} without output: {stderr}")
            return None
        try:
            data = json.loads(proc.stdout)
        except json.JSONDecodeError as e:
            result.errors.append(f"{tool}: unparseable JSON output: {e}")
            return None

        try:
            issues = PARSERS[tool](data)
        except (AttributeError, TypeError) as e:
            result.errors.append(f"{tool}: unexpected output format: {e}")
            return None
        log_debug(f"{tool} reported {len(issues)} issues")
        return issues
