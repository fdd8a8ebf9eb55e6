from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

from ..config import ScanConfig
from ..metadata import get_cwe, get_remediation
from ..models import ScanResult, Severity, Vulnerability
from ..utils import log_debug


class SecurityScanner(ABC):
    """
    Scanner Root Class.
    All scanners inherit from this and implement `execute`.
    """

    # --- Scanner Metadata (OVERRIDE THESE) ---
    NAME: str = "generic"
    DESCRIPTION: str = "No description available."

    def __init__(self, config: Optional[ScanConfig] = None):
        self.config = config or ScanConfig()

    def run(self, target: str) -> ScanResult:
        """
        Orchestrator pattern (Template Method).
        DO NOT OVERRIDE unless extending core functionality.
        """
        result = ScanResult(scanner=self.NAME, target=target)

        # 1. Applicability Check (Should we even run?)
        reason = self.applies(target)
        if reason is not True:
            result.errors.append(f"Skipped: {reason}")
            result.finished_at = datetime.now(timezone.utc)
            return result

        try:
            # 2. Execute Scanner Logic
            self.execute(target, result)
        except Exception as e:
            # Scanner failures are reported, never propagated to the engine
            result.errors.append(f"{type(e).__name__}: {e}")
            log_debug(f"{self.NAME} failed on {target}: {e}")

        result.finished_at = datetime.now(timezone.utc)
        return result

    def applies(self, target: str):
        """
        Returns True if this scanner can handle the target, else a reason string.
        """
        return True

    @abstractmethod
    def execute(self, target: str, result: ScanResult) -> None:
        """
        Core scan logic. Appends findings and observations to `result`.
        """

    def finding(self, target: str, severity: Severity, category: str, description: str,
                owasp: str = "N/A", cwe: Optional[str] = None, **kwargs) -> Vulnerability:
        """Helper to construct standardized findings."""
        return Vulnerability(
            severity=severity,
            category=category,
            description=description,
            remediation=kwargs.pop("remediation", None) or get_remediation(category),
            scanner=self.NAME,
            target=target,
            owasp=owasp,
            cwe=cwe or (get_cwe(owasp) if owasp != "N/A" else "N/A"),
            **kwargs
        )
