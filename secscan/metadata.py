# Central Knowledge Base
# Severity weighting, remediation advice, CWE mapping and risky service table
from typing import Dict, Tuple

from .models import Severity

SEVERITY_WEIGHTS = {
    Severity.CRITICAL: 25,
    Severity.HIGH: 15,
    Severity.MEDIUM: 8,
    Severity.LOW: 3,
    Severity.INFO: 1,
}

SEVERITY_SCORES = {
    "CRITICAL": 10.0,
    "HIGH": 7.5,
    "MEDIUM": 5.0,
    "LOW": 2.5,
    "INFO": 0.0
}

DEFAULT_REMEDIATION = "Review and implement appropriate security measures"

REMEDIATION_ADVICE = {
    # --- CODE ---
    "SQL-Injection": "Use parameterized queries or an ORM instead of building SQL from strings",
    "Code-Injection": "Never pass untrusted data to eval/exec; use safe parsers such as ast.literal_eval or JSON",
    "XSS": "Implement proper output encoding and a Content-Security-Policy",
    "Path-Traversal": "Canonicalize paths and reject anything resolving outside the allowed base directory",
    "Hardcoded-Secrets": "Use environment variables or a secret manager and rotate the exposed value",
    "Weak-Cryptography": "Use SHA-256 or stronger for integrity and bcrypt/Argon2 for passwords",
    "Insecure-Protocol": "Use HTTPS instead of HTTP",
    "Weak-Random": "Use a cryptographically secure generator (secrets, crypto.getRandomValues)",
    "Sensitive-Data-Logging": "Remove or mask sensitive data before it reaches logs",
    "Tainted-Data-Flow": "Validate or sanitize untrusted input before it reaches a dangerous sink",

    # --- NETWORK ---
    "Exposed-Service": "Close the port or restrict it to trusted networks with a firewall",

    # --- WEB / TLS ---
    "TLS-Certificate": "Install a valid certificate from a trusted CA and automate renewal",
    "Weak-TLS": "Disable TLS 1.0/1.1 and require TLS 1.2 or newer",
    "Clickjacking": "Send X-Frame-Options: DENY or a CSP frame-ancestors directive",
    "MIME-Sniffing": "Send X-Content-Type-Options: nosniff",
    "CORS-Misconfiguration": "Restrict Access-Control-Allow-Origin to an explicit allow-list",
    "Missing-HSTS": "Send Strict-Transport-Security with a long max-age",
    "Information-Disclosure": "Strip version details from Server and X-Powered-By headers",

    # --- CONFIGURATION ---
    "Sensitive-File": "Remove the file from the tree, add it to .gitignore and rotate its contents",
    "Insecure-Permissions": "Remove world-write permission (chmod o-w)",
    "Security-Misconfiguration": "Disable debug mode outside of local development",

    # --- EXTERNAL TOOLS ---
    "Python-Security": "Follow the Bandit guidance for the reported test id",
    "JavaScript-Security": "Follow the eslint-plugin-security guidance for the reported rule",
    "Static-Analysis": "Review the Semgrep rule documentation and fix the flagged pattern",
    "Dependency-Vulnerability": "Upgrade the affected package to a fixed version",
}

CWE_FOR_OWASP = {
    "A01-Broken-Access-Control": "CWE-285",
    "A02-Cryptographic-Failures": "CWE-327",
    "A03-Injection": "CWE-89",
    "A05-Security-Misconfiguration": "CWE-16",
    "A07-Identification-Authentication-Failures": "CWE-287",
    "A09-Security-Logging-Monitoring-Failures": "CWE-778",
}

# port -> (service, severity, reason)
RISKY_PORTS: Dict[int, Tuple[str, Severity, str]] = {
    21: ("FTP", Severity.HIGH, "Cleartext file transfer with credentials sent unencrypted"),
    23: ("Telnet", Severity.CRITICAL, "Cleartext remote shell"),
    25: ("SMTP", Severity.LOW, "Mail relay reachable; verify it is not an open relay"),
    53: ("DNS", Severity.LOW, "DNS service reachable; verify recursion and zone transfers are restricted"),
    110: ("POP3", Severity.MEDIUM, "Cleartext mail retrieval"),
    135: ("MSRPC", Severity.HIGH, "Windows RPC endpoint mapper exposed"),
    139: ("NetBIOS", Severity.HIGH, "NetBIOS session service exposed"),
    143: ("IMAP", Severity.MEDIUM, "Cleartext mail access"),
    445: ("SMB", Severity.CRITICAL, "SMB file sharing exposed"),
    1433: ("MSSQL", Severity.HIGH, "Database listener exposed"),
    1521: ("Oracle", Severity.HIGH, "Database listener exposed"),
    2375: ("Docker", Severity.CRITICAL, "Unauthenticated Docker daemon API"),
    3306: ("MySQL", Severity.HIGH, "Database listener exposed"),
    3389: ("RDP", Severity.HIGH, "Remote desktop exposed"),
    5432: ("PostgreSQL", Severity.HIGH, "Database listener exposed"),
    5900: ("VNC", Severity.HIGH, "Remote framebuffer exposed"),
    6379: ("Redis", Severity.CRITICAL, "Redis is unauthenticated by default"),
    9200: ("Elasticsearch", Severity.HIGH, "Search cluster HTTP API exposed"),
    11211: ("Memcached", Severity.HIGH, "Memcached exposed (amplification and data leak)"),
    27017: ("MongoDB", Severity.HIGH, "Database listener exposed"),
}

# External scanners run by the tools scanner, and the sets each profile runs
EXTERNAL_TOOLS = ["bandit", "eslint", "semgrep", "trivy"]

TOOL_PROFILES = {
    "quick": ["bandit", "eslint", "semgrep"],
    "comprehensive": ["bandit", "eslint", "semgrep", "trivy"],
    "web": ["eslint", "semgrep"],
    "container": ["trivy"],
}


def get_remediation(category: str) -> str:
    return REMEDIATION_ADVICE.get(category, DEFAULT_REMEDIATION)


def get_cwe(owasp: str) -> str:
    return CWE_FOR_OWASP.get(owasp, "CWE-OTHER")
