import json
import os
from datetime import datetime
from typing import Optional

from colorama import Fore, Style

from ..models import SEVERITY_ORDER, ScanReport, Severity
from ..scoring import security_score, severity_counts, threat_level
from ..utils import create_folder, log_success

SEVERITY_COLORS = {
    "CRITICAL": Fore.RED + Style.BRIGHT,
    "HIGH": Fore.RED,
    "MEDIUM": Fore.YELLOW,
    "LOW": Fore.CYAN,
    "INFO": Fore.WHITE,
}


class ConsoleReporter:
    def __init__(self, max_findings: int = 10):
        self.max_findings = max_findings

    def print_summary(self, report: ScanReport):
        vulns = report.vulnerabilities
        counts = severity_counts(vulns)
        level = threat_level(vulns)

        print("\n" + "="*60)
        print(f"SECURITY SCAN SUMMARY ({report.action.upper()})")
        print("="*60)
        print(f"Target:        {report.target}")
        print(f"Findings:      {len(vulns)}")
        for sev in reversed(SEVERITY_ORDER):
            print(f"  {SEVERITY_COLORS[sev.value]}{sev.value:<9}{Style.RESET_ALL} {counts[sev.value]}")
        print(f"Score:         {Style.BRIGHT}{security_score(vulns)}/100{Style.RESET_ALL}")
        print(f"Threat Level:  {SEVERITY_COLORS.get(level, Fore.GREEN)}{level}{Style.RESET_ALL}")

        if vulns:
            print(f"\n[!] TOP FINDINGS:")
            ranked = sorted(vulns, key=lambda v: v.severity.rank, reverse=True)
            for v in ranked[:self.max_findings]:
                where = f"{v.file}:{v.line}" if v.file and v.line else (v.file or v.target)
                print(f" - {SEVERITY_COLORS[v.severity.value]}[{v.severity.value}]{Style.RESET_ALL} {v.category}: {v.description} ({where})")
            if len(ranked) > self.max_findings:
                print(f"   ... and {len(ranked) - self.max_findings} more (see JSON report)")

        if report.errors:
            print(f"\n{Fore.YELLOW}[!] NOTE: {len(report.errors)} scanner errors occurred.{Style.RESET_ALL}")

        print("="*60 + "\n")


def report_filename(report: ScanReport, when: Optional[datetime] = None) -> str:
    ts = (when or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return f"security_scan_{report.action}_{ts}.json"


def generate_json_report(report: ScanReport, output_dir: str) -> str:
    """Writes the report as a timestamped JSON file in `output_dir` and returns its path."""
    create_folder(output_dir)
    path = os.path.join(output_dir, report_filename(report))
    with open(path, "w", encoding="utf-8") as f:
        json.dump(report.to_dict(), f, indent=2)
    log_success(f"JSON Report written to: {path}")
    return path


def exceeds_threshold(report: ScanReport, threshold: Severity) -> bool:
    return any(v.severity.rank >= threshold.rank for v in report.vulnerabilities)
