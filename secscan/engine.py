import os
from datetime import datetime, timezone
from typing import List, Optional, Type

from colorama import Fore, Style

from .config import ScanConfig
from .exceptions import ScanError
from .models import ScanReport, ScanResult
from .scanners import SCANNERS, SecurityScanner
from .utils import log_info, log_warning

ACTIONS = ["network", "web", "code", "config", "tools", "full"]


class Engine:
    def __init__(self, config: Optional[ScanConfig] = None):
        self.config = config or ScanConfig()

    def scanners_for(self, action: str, target: str) -> List[Type[SecurityScanner]]:
        """Resolves an action name to the scanner classes it runs."""
        if action == "full":
            # Paths get the source-tree scanners, anything else is a network target
            if os.path.exists(target):
                return [SCANNERS["code"], SCANNERS["config"]]
            return [SCANNERS["network"], SCANNERS["web"]]
        if action not in SCANNERS:
            raise ScanError(f"Unknown action: {action} (expected one of {', '.join(ACTIONS)})")
        return [SCANNERS[action]]

    def run(self, action: str, target: str) -> ScanReport:
        if not target:
            raise ScanError("A target is required")
        report = ScanReport(action=action, target=target)

        for scanner_cls in self.scanners_for(action, target):
            scanner = scanner_cls(self.config)
            log_info(f"Running {scanner.NAME} scanner against {target}...")
            result = scanner.run(target)
            report.results.append(result)
            self._print_result(result)

        report.finished_at = datetime.now(timezone.utc)
        return report

    def _print_result(self, result: ScanResult):
        n = len(result.vulnerabilities)
        color = Fore.GREEN if n == 0 else Fore.RED
        print(f"    -> {color}[{result.scanner.upper()}] {n} findings in {result.duration_ms}ms{Style.RESET_ALL}")
        for err in result.errors:
            log_warning(f"{result.scanner}: {err}")
