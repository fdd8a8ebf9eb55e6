import json
import os
from pathlib import Path
from typing import Optional

from .. import __version__
from ..metadata import SEVERITY_SCORES, get_remediation
from ..models import ScanReport, Severity
from ..utils import log_success


def sarif_level(severity: Severity) -> str:
    if severity in (Severity.CRITICAL, Severity.HIGH):
        return "error"
    if severity == Severity.MEDIUM:
        return "warning"
    return "note"


def artifact_location(path: str, root: Optional[str]) -> dict:
    """Paths under a scanned directory are relative to %SRCROOT%, anything else is a file:// URI."""
    abs_path = os.path.abspath(path)
    if root and os.path.isdir(root):
        abs_root = os.path.abspath(root)
        try:
            inside = os.path.commonpath([abs_path, abs_root]) == abs_root
        except ValueError:
            # Different drives on Windows
            inside = False
        if inside:
            return {"uri": os.path.relpath(abs_path, abs_root).replace(os.sep, "/"), "uriBaseId": "SRCROOT"}
    return {"uri": Path(abs_path).as_uri()}


class SarifReporter:
    def __init__(self, filename="report.sarif"):
        self.filename = filename

    def build(self, report: ScanReport) -> dict:
        rules = []
        rule_indices = {}
        sarif_results = []

        # A rule carries the worst severity seen in its category
        worst = {}
        for v in report.vulnerabilities:
            if v.category not in worst or v.severity.rank > worst[v.category].rank:
                worst[v.category] = v.severity

        for v in report.vulnerabilities:
            # 1. Register Rule if not present
            if v.category not in rule_indices:
                rules.append({
                    "id": v.category,
                    "name": v.category.replace("-", ""),
                    "shortDescription": {"text": v.title},
                    "help": {"text": get_remediation(v.category)},
                    "properties": {
                        "security-severity": str(SEVERITY_SCORES.get(worst[v.category].value, 5.0)),
                        "tags": ["security"] + [t for t in (v.cwe, v.owasp) if t and t != "N/A"]
                    }
                })
                rule_indices[v.category] = len(rules) - 1

            # 2. Add Result
            if v.file:
                location = {"artifactLocation": artifact_location(v.file, report.target)}
                if v.line:
                    location["region"] = {"startLine": v.line}
            else:
                location = {"artifactLocation": {"uri": v.target or report.target}}

            sarif_results.append({
                "ruleId": v.category,
                "ruleIndex": rule_indices[v.category],
                "level": sarif_level(v.severity),
                "message": {"text": v.description},
                "locations": [{"physicalLocation": location}],
                "partialFingerprints": {"findingId": v.id},
            })

        run = {
            "tool": {
                "driver": {
                    "name": "secscan",
                    "version": __version__,
                    "rules": rules
                }
            },
            "results": sarif_results
        }
        if os.path.isdir(report.target):
            run["originalUriBaseIds"] = {"SRCROOT": {"uri": Path(os.path.abspath(report.target)).as_uri() + "/"}}

        return {
            "version": "2.1.0",
            "$schema": "https://json.schemastore.org/sarif-2.1.0-rtm.5.json",
            "runs": [run]
        }

    def generate(self, report: ScanReport) -> str:
        parent = os.path.dirname(self.filename)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(self.filename, "w", encoding="utf-8") as f:
            json.dump(self.build(report), f, indent=2)
        log_success(f"SARIF Report generated: {self.filename}")
        return self.filename
