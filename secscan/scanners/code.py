import os
import re
from dataclasses import dataclass
from typing import Iterator, List, Set, Tuple

from ..exceptions import ScanError
from ..models import ScanResult, Severity
from ..static_analysis import adapter_for
from ..utils import log_debug, mask_secret
from .base import SecurityScanner

# Fragments that turn a string literal into a dynamically built one
_INTERP = r"(['\"]\s*\+\s*\w|['\"]\s*%\s*[\w(]|\{\w+\}|\$\{\w+|\.format\()"
_SECRET_NAMES = r"(password|passwd|pwd|api[_-]?key|secret|access[_-]?token|auth[_-]?token|token)"


@dataclass
class PatternRule:
    category: str
    severity: Severity
    owasp: str
    description: str
    patterns: List["re.Pattern"]

    def matches(self, line: str) -> bool:
        return any(p.search(line) for p in self.patterns)


def _rule(category, severity, owasp, description, *patterns, flags=0) -> PatternRule:
    return PatternRule(category, severity, owasp, description, [re.compile(p, flags) for p in patterns])


PATTERN_RULES = [
    _rule("SQL-Injection", Severity.HIGH, "A03-Injection",
          "SQL statement built from dynamic input",
          rf"\bselect\b.+\bfrom\b.*{_INTERP}",
          rf"\binsert\s+into\b.*{_INTERP}",
          rf"\bupdate\s+\w+\s+set\b.*{_INTERP}",
          rf"\bdelete\s+from\b.*{_INTERP}",
          flags=re.IGNORECASE),
    _rule("Code-Injection", Severity.CRITICAL, "A03-Injection",
          "Dynamic code evaluation",
          r"(?<![\w.])eval\s*\(",
          r"(?<![\w.])exec\s*\("),
    _rule("XSS", Severity.HIGH, "A03-Injection",
          "Unescaped HTML written to the DOM",
          r"\.innerHTML\s*=(?!=)",
          r"\bdocument\.write(ln)?\s*\(",
          r"dangerouslySetInnerHTML"),
    _rule("Path-Traversal", Severity.MEDIUM, "A01-Broken-Access-Control",
          "Relative parent path reference",
          r"\.\./",
          r"\.\.\\",
          r"\.\.%2f",
          r"\.\.%5c",
          flags=re.IGNORECASE),
    _rule("Hardcoded-Secrets", Severity.CRITICAL, "A07-Identification-Authentication-Failures",
          "Hardcoded credential or secret",
          rf"(?<![\w-])[\w-]*{_SECRET_NAMES}['\"]?\s*[:=]\s*['\"][^'\"]+['\"]",
          flags=re.IGNORECASE),
    _rule("Weak-Cryptography", Severity.MEDIUM, "A02-Cryptographic-Failures",
          "Weak cryptographic algorithm",
          r"\bhashlib\.(md5|sha1)\b",
          r"(?<![\w.])(md5|sha1)\s*\(",
          r"createHash\s*\(\s*['\"](md5|sha1)['\"]",
          r"\b(DES|ARC4|RC4)\.new\s*\(",
          r"getInstance\s*\(\s*['\"](DES|RC4)",
          flags=re.IGNORECASE),
    _rule("Insecure-Protocol", Severity.LOW, "A02-Cryptographic-Failures",
          "Cleartext HTTP URL",
          r"['\"]http://(?!localhost|127\.0\.0\.1|0\.0\.0\.0|\[::1\])"),
    _rule("Weak-Random", Severity.LOW, "A02-Cryptographic-Failures",
          "Non-cryptographic random number generator",
          r"\bMath\.random\s*\(\s*\)",
          r"\brandom\.(random|randint|choice)\s*\("),
    _rule("Sensitive-Data-Logging", Severity.MEDIUM, "A09-Security-Logging-Monitoring-Failures",
          "Sensitive value written to logs",
          r"\b(console\.log|print|log(ger)?\.(debug|info|warn|warning|error))\s*\(.*(password|passwd|secret|token)",
          flags=re.IGNORECASE),
]

SECRET_RULE = next(r for r in PATTERN_RULES if r.category == "Hardcoded-Secrets")

MAX_EVIDENCE = 200


def safe_evidence(text: str) -> str:
    """Trimmed evidence; anything holding a secret is masked, whichever rule reports it."""
    evidence = text.strip()
    if SECRET_RULE.matches(evidence):
        evidence = mask_secret(evidence)
    return evidence[:MAX_EVIDENCE]


def iter_source_files(root: str, extensions: List[str], exclude_dirs: List[str]) -> Iterator[str]:
    """Yields matching files under `root` in a stable order, pruning excluded directories."""
    excluded = set(exclude_dirs)
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in excluded)
        for name in sorted(filenames):
            if os.path.splitext(name)[1].lower() in extensions:
                yield os.path.join(dirpath, name)


class CodeSecurityScanner(SecurityScanner):
    NAME = "code"
    DESCRIPTION = "Regex pattern matching and Python taint analysis over source files."

    def applies(self, target: str):
        if not os.path.exists(target):
            return f"path does not exist: {target}"
        return True

    def execute(self, target: str, result: ScanResult) -> None:
        if os.path.isdir(target):
            files = list(iter_source_files(target, self.config.extensions, self.config.exclude_dirs))
        elif os.path.isfile(target):
            files = [target]
        else:
            raise ScanError(f"Not a file or directory: {target}")

        scanned = 0
        for path in files:
            try:
                if os.path.getsize(path) > self.config.max_file_size:
                    log_debug(f"Skipping large file {path}")
                    continue
                with open(path, "r", encoding="utf-8", errors="replace") as f:
                    code = f.read()
            except OSError as e:
                result.errors.append(f"Cannot read {path}: {e}")
                continue
            scanned += 1
            self.scan_source(path, code, result)

        result.data["files_scanned"] = scanned
        log_debug(f"Scanned {scanned} files, {len(result.vulnerabilities)} findings")

    def scan_source(self, path: str, code: str, result: ScanResult):
        seen: Set[Tuple[str, int]] = set()
        lines = code.splitlines()

        for lineno, line in enumerate(lines, start=1):
            evidence = safe_evidence(line)
            for rule in PATTERN_RULES:
                if (rule.category, lineno) in seen or not rule.matches(line):
                    continue
                seen.add((rule.category, lineno))
                result.add(self.finding(
                    path, rule.severity, rule.category,
                    f"{rule.description} in {os.path.basename(path)}:{lineno}",
                    owasp=rule.owasp,
                    file=path,
                    line=lineno,
                    evidence=evidence,
                ))

        adapter = adapter_for(path)
        if adapter is None:
            return
        for p in adapter.analyze(code):
            if ("Tainted-Data-Flow", p["line"]) in seen:
                continue
            seen.add(("Tainted-Data-Flow", p["line"]))
            source_line = safe_evidence(lines[p["line"] - 1]) if 0 < p["line"] <= len(lines) else ""
            result.add(self.finding(
                path, Severity.CRITICAL, "Tainted-Data-Flow",
                f"{p['evidence']} in {os.path.basename(path)}:{p['line']}",
                owasp="A03-Injection",
                file=path,
                line=p["line"],
                evidence=source_line,
                confidence=0.9,
            ))
