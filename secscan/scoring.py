from typing import Any, Dict, List

from .metadata import SEVERITY_WEIGHTS
from .models import Severity, Vulnerability

# Per-finding cost factors: (business impact, technical debt, remediation hours)
RISK_FACTORS = {
    Severity.CRITICAL: (100, 40, 8.0),
    Severity.HIGH: (50, 20, 4.0),
    Severity.MEDIUM: (20, 10, 2.0),
    Severity.LOW: (5, 2, 0.5),
    Severity.INFO: (0, 0, 0.0),
}


def severity_counts(vulns: List[Vulnerability]) -> Dict[str, int]:
    counts = {s.value: 0 for s in Severity}
    for v in vulns:
        counts[v.severity.value] += 1
    return counts


def security_score(vulns: List[Vulnerability]) -> int:
    """
    100 minus the severity weight of every finding, scaled by mean confidence.
    Never below 0.
    """
    score = 100.0
    for v in vulns:
        score -= SEVERITY_WEIGHTS.get(v.severity, 1)
    if vulns:
        score *= sum(v.confidence for v in vulns) / len(vulns)
    return max(0, int(round(score)))


def threat_level(vulns: List[Vulnerability]) -> str:
    counts = severity_counts(vulns)
    if counts["CRITICAL"] > 0:
        return "CRITICAL"
    if counts["HIGH"] > 5:
        return "HIGH"
    if counts["HIGH"] > 0 or counts["MEDIUM"] > 10:
        return "MEDIUM"
    if vulns:
        return "LOW"
    return "NONE"


def risk_assessment(vulns: List[Vulnerability]) -> Dict[str, Any]:
    impact = debt = effort = 0.0
    for v in vulns:
        i, d, e = RISK_FACTORS[v.severity]
        impact += i
        debt += d
        effort += e

    counts = severity_counts(vulns)
    return {
        "overall_risk": threat_level(vulns),
        "risk_distribution": {k.lower(): n for k, n in counts.items()},
        "business_impact": int(impact),
        "technical_debt": int(debt),
        "remediation_effort_hours": effort,
    }


def recommendations(vulns: List[Vulnerability]) -> List[Dict[str, Any]]:
    counts = severity_counts(vulns)
    recs = []

    if counts["CRITICAL"] > 0:
        recs.append({
            "priority": "CRITICAL",
            "category": "Immediate Action Required",
            "title": "Address Critical Vulnerabilities",
            "description": f"Found {counts['CRITICAL']} critical vulnerabilities that require immediate attention",
            "actions": ["Review and fix critical vulnerabilities within 24 hours"],
        })

    if counts["HIGH"] > 5:
        recs.append({
            "priority": "HIGH",
            "category": "Security Hardening",
            "title": "Implement Security Hardening",
            "description": f"Found {counts['HIGH']} high-severity vulnerabilities",
            "actions": ["Implement comprehensive security hardening measures"],
        })

    if any(v.category == "Hardcoded-Secrets" for v in vulns):
        recs.append({
            "priority": "CRITICAL",
            "category": "Secret Management",
            "title": "Remove Hardcoded Secrets",
            "description": "Replace all hardcoded secrets with secure secret management solutions",
            "actions": [
                "Use environment variables",
                "Implement secret management service",
                "Rotate all exposed secrets",
                "Implement secret scanning in CI/CD",
            ],
        })

    owasp = sorted({v.owasp for v in vulns if v.owasp and v.owasp != "N/A"})
    if owasp:
        recs.append({
            "priority": "HIGH",
            "category": "OWASP Compliance",
            "title": "Address OWASP Top 10 Vulnerabilities",
            "description": f"Findings map to OWASP categories: {', '.join(owasp)}",
            "actions": [
                "Implement input validation",
                "Use parameterized queries",
                "Implement proper authentication",
                "Use HTTPS everywhere",
            ],
        })

    recs.append({
        "priority": "MEDIUM",
        "category": "Security Best Practices",
        "title": "Implement Security Best Practices",
        "description": "Implement comprehensive security best practices and controls",
        "actions": [
            "Enable security headers",
            "Implement rate limiting",
            "Use secure coding practices",
            "Regular security audits",
        ],
    })
    return recs
