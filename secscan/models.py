import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Severity(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"

    @classmethod
    def from_value(cls, value: Any) -> "Severity":
        """Accepts a Severity or a case-insensitive name."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown severity: {value!r}") from None

    @property
    def rank(self) -> int:
        # Higher is worse
        return SEVERITY_ORDER.index(self)


SEVERITY_ORDER = [Severity.INFO, Severity.LOW, Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL]


@dataclass
class Vulnerability:
    """A single security finding produced by one of the scanners."""
    severity: Severity
    category: str
    description: str
    remediation: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    title: str = ""
    scanner: str = ""
    target: str = ""
    file: Optional[str] = None
    line: Optional[int] = None
    evidence: Optional[str] = None
    port: Optional[int] = None
    cwe: str = "N/A"
    owasp: str = "N/A"
    confidence: float = 0.85 # 0.0 to 1.0
    timestamp: str = field(default_factory=utc_now)

    def __post_init__(self):
        self.severity = Severity.from_value(self.severity)
        if not self.title:
            self.title = self.category.replace("-", " ")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "severity": self.severity.value,
            "category": self.category,
            "title": self.title,
            "description": self.description,
            "remediation": self.remediation,
            "scanner": self.scanner,
            "target": self.target,
            "file": self.file,
            "line": self.line,
            "evidence": self.evidence,
            "port": self.port,
            "cwe": self.cwe,
            "owasp": self.owasp,
            "confidence": self.confidence,
            "timestamp": self.timestamp,
        }


@dataclass
class ScanResult:
    """Standardized output of one scanner run against one target."""
    scanner: str
    target: str
    vulnerabilities: List[Vulnerability] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    def add(self, vuln: Vulnerability) -> Vulnerability:
        self.vulnerabilities.append(vuln)
        return vuln

    @property
    def duration_ms(self) -> int:
        if self.finished_at is None:
            return 0
        return int((self.finished_at - self.started_at).total_seconds() * 1000)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scanner": self.scanner,
            "target": self.target,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_ms": self.duration_ms,
            "errors": list(self.errors),
            "data": self.data,
            "vulnerabilities": [v.to_dict() for v in self.vulnerabilities],
        }


@dataclass
class ScanReport:
    """Aggregate of every scanner executed for a single CLI invocation."""
    action: str
    target: str
    scan_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    results: List[ScanResult] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    @property
    def vulnerabilities(self) -> List[Vulnerability]:
        return [v for r in self.results for v in r.vulnerabilities]

    @property
    def errors(self) -> List[str]:
        return [f"{r.scanner}: {e}" for r in self.results for e in r.errors]

    def to_dict(self) -> Dict[str, Any]:
        from .scoring import recommendations, risk_assessment, security_score, severity_counts, threat_level

        vulns = self.vulnerabilities
        counts = severity_counts(vulns)
        duration = 0
        if self.finished_at is not None:
            duration = int((self.finished_at - self.started_at).total_seconds() * 1000)
        return {
            "scan_id": self.scan_id,
            "scan_info": {
                "action": self.action,
                "target": self.target,
                "start_time": self.started_at.isoformat(),
                "end_time": self.finished_at.isoformat() if self.finished_at else None,
                "duration_ms": duration,
                "scanners": [r.scanner for r in self.results],
            },
            "security_metrics": {
                "security_score": security_score(vulns),
                "threat_level": threat_level(vulns),
                "total_vulnerabilities": len(vulns),
                **{f"{sev.lower()}_vulnerabilities": n for sev, n in counts.items()},
            },
            "risk_assessment": risk_assessment(vulns),
            "recommendations": recommendations(vulns),
            "results": [r.to_dict() for r in self.results],
        }
