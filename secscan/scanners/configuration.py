import fnmatch
import os
import re
import stat

from ..models import ScanResult, Severity
from .base import SecurityScanner

SENSITIVE_FILES = [
    ".env", "id_rsa", "id_dsa", "id_ecdsa", "id_ed25519", "*.pem", "*.key", "*.p12", "*.pfx",
    ".htpasswd", "credentials.json", ".npmrc", ".pypirc",
]
SAFE_TEMPLATES = {".env.example", ".env.sample", ".env.template"}

DEBUG_FILE_PATTERNS = ["*.py", "*.yaml", "*.yml", "*.json", "*.ini", "*.cfg", "*.toml", "*.env", ".env"]
DEBUG_FLAG_RE = re.compile(r"""^\s*["']?debug["']?\s*[:=]\s*["']?(true|1|on|yes)\b""", re.IGNORECASE)


def _matches_any(name: str, patterns) -> bool:
    return any(fnmatch.fnmatch(name, p) for p in patterns)


class ConfigurationSecurityScanner(SecurityScanner):
    NAME = "config"
    DESCRIPTION = "Sensitive files, world-writable permissions and debug flags in a project tree."

    def applies(self, target: str):
        if not os.path.isdir(target):
            return f"not a directory: {target}"
        return True

    def execute(self, target: str, result: ScanResult) -> None:
        excluded = set(self.config.exclude_dirs)
        checked = 0
        for dirpath, dirnames, filenames in os.walk(target):
            dirnames[:] = sorted(d for d in dirnames if d not in excluded)
            for name in sorted(filenames):
                path = os.path.join(dirpath, name)
                checked += 1
                self.check_sensitive(path, name, result)
                self.check_permissions(path, result)
                if _matches_any(name, DEBUG_FILE_PATTERNS):
                    self.check_debug_flags(path, result)
        result.data["files_checked"] = checked

    def check_sensitive(self, path: str, name: str, result: ScanResult):
        if name in SAFE_TEMPLATES or not _matches_any(name, SENSITIVE_FILES):
            return
        result.add(self.finding(
            path, Severity.HIGH, "Sensitive-File",
            f"Sensitive file present in project tree: {name}",
            owasp="A05-Security-Misconfiguration", cwe="CWE-538", file=path, confidence=0.9,
        ))

    def check_permissions(self, path: str, result: ScanResult):
        if os.name != "posix" or os.path.islink(path):
            return
        try:
            mode = os.stat(path).st_mode
        except OSError as e:
            result.errors.append(f"Cannot stat {path}: {e}")
            return
        if mode & stat.S_IWOTH:
            result.add(self.finding(
                path, Severity.MEDIUM, "Insecure-Permissions",
                f"World-writable file (mode {stat.filemode(mode)})",
                owasp="A01-Broken-Access-Control", cwe="CWE-732", file=path, confidence=1.0,
            ))

    def check_debug_flags(self, path: str, result: ScanResult):
        # Dangling symlinks have nothing to read
        if not os.path.isfile(path):
            return
        try:
            if os.path.getsize(path) > self.config.max_file_size:
                return
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                for lineno, line in enumerate(f, start=1):
                    if DEBUG_FLAG_RE.search(line):
                        result.add(self.finding(
                            path, Severity.LOW, "Security-Misconfiguration",
                            f"Debug mode enabled in {os.path.basename(path)}:{lineno}",
                            owasp="A05-Security-Misconfiguration", file=path, line=lineno,
                            evidence=line.strip()[:200],
                        ))
        except OSError as e:
            result.errors.append(f"Cannot read {path}: {e}")
