import re
import socket
import ssl
import time
from typing import Any, Dict
from urllib.parse import urlparse

import requests

from ..models import ScanResult, Severity
from ..utils import log_debug
from .base import SecurityScanner

WEAK_PROTOCOLS = {"TLSv1", "TLSv1.1", "SSLv3", "SSLv2"}
VERSION_RE = re.compile(r"\d")


def normalize_url(target: str) -> str:
    """Bare hosts are treated as https."""
    if "://" not in target:
        return f"https://{target}"
    return target


def _flatten_name(name) -> str:
    # getpeercert() returns ((('commonName', 'x'),), ...)
    return ", ".join(f"{k}={v}" for rdn in name or () for k, v in rdn)


def probe_tls(host: str, port: int, timeout: float, verify: bool = True) -> Dict[str, Any]:
    """
    Opens a TLS connection and returns what was negotiated.
    Raises ssl.SSLCertVerificationError on a bad certificate and OSError on connection failure.
    """
    context = ssl.create_default_context()
    # Deprecated protocols and ciphers must still negotiate so they can be reported
    context.minimum_version = ssl.TLSVersion.MINIMUM_SUPPORTED
    try:
        context.set_ciphers("DEFAULT:@SECLEVEL=0")
    except ssl.SSLError as e:
        log_debug(f"Cannot lower OpenSSL security level: {e}")
    if not verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

    with socket.create_connection((host, port), timeout=timeout) as sock:
        with context.wrap_socket(sock, server_hostname=host) as tls:
            cert = tls.getpeercert() or {}
            cipher = tls.cipher()
            info = {
                "protocol": tls.version(),
                "cipher": cipher[0] if cipher else None,
                "issuer": _flatten_name(cert.get("issuer")),
                "subject": _flatten_name(cert.get("subject")),
                "not_after": cert.get("notAfter"),
            }
    if info["not_after"]:
        expires = ssl.cert_time_to_seconds(info["not_after"])
        info["days_until_expiry"] = int((expires - time.time()) // 86400)
    return info


class WebSecurityScanner(SecurityScanner):
    NAME = "web"
    DESCRIPTION = "TLS certificate/protocol probe and HTTP security header audit."

    def applies(self, target: str):
        parsed = urlparse(normalize_url(target))
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            return f"not an http(s) target: {target}"
        return True

    def execute(self, target: str, result: ScanResult) -> None:
        url = normalize_url(target)
        parsed = urlparse(url)
        result.data["url"] = url

        if parsed.scheme == "https":
            self.check_tls(url, parsed.hostname, parsed.port or 443, result)
        else:
            result.add(self.finding(
                url, Severity.MEDIUM, "Insecure-Protocol",
                "Target is served over plain HTTP; traffic can be read and modified in transit",
                owasp="A02-Cryptographic-Failures",
            ))

        self.check_headers(url, result)

    def check_tls(self, url: str, host: str, port: int, result: ScanResult):
        try:
            info = probe_tls(host, port, self.config.timeout, verify=self.config.verify_tls)
        except ssl.SSLCertVerificationError as e:
            reason = getattr(e, "verify_message", None) or str(e)
            result.data["tls"] = {"verified": False, "error": reason}
            result.add(self.finding(
                url, Severity.HIGH, "TLS-Certificate",
                f"Certificate verification failed: {reason}",
                owasp="A02-Cryptographic-Failures",
            ))
            return
        except (ssl.SSLError, OSError) as e:
            result.errors.append(f"TLS probe failed for {host}:{port}: {e}")
            return

        info["verified"] = self.config.verify_tls
        result.data["tls"] = info
        log_debug(f"TLS {info['protocol']} / {info['cipher']} on {host}:{port}")

        if info.get("protocol") in WEAK_PROTOCOLS:
            result.add(self.finding(
                url, Severity.MEDIUM, "Weak-TLS",
                f"Server negotiated deprecated protocol {info['protocol']}",
                owasp="A02-Cryptographic-Failures",
            ))

        days = info.get("days_until_expiry")
        if days is not None:
            if days < 0:
                result.add(self.finding(
                    url, Severity.HIGH, "TLS-Certificate",
                    f"Certificate expired on {info['not_after']}",
                    owasp="A02-Cryptographic-Failures",
                ))
            elif days <= self.config.cert_expiry_warning_days:
                result.add(self.finding(
                    url, Severity.MEDIUM, "TLS-Certificate",
                    f"Certificate expires in {days} days ({info['not_after']})",
                    owasp="A02-Cryptographic-Failures",
                ))

    def check_headers(self, url: str, result: ScanResult):
        """
        Checks for missing security headers (Clickjacking, MIME, CORS, HSTS) and version leaks.
        """
        try:
            resp = requests.get(
                url,
                timeout=self.config.timeout,
                verify=self.config.verify_tls,
                headers={"User-Agent": self.config.user_agent},
                allow_redirects=True,
            )
        except requests.RequestException as e:
            result.errors.append(f"HTTP request failed for {url}: {e}")
            return

        headers = {k.lower(): v for k, v in resp.headers.items()}
        result.data["status_code"] = resp.status_code
        result.data["headers"] = headers
        misconfig = "A05-Security-Misconfiguration"

        # 1. Clickjacking (X-Frame-Options / CSP)
        if "x-frame-options" not in headers and "content-security-policy" not in headers:
            result.add(self.finding(
                url, Severity.MEDIUM, "Clickjacking",
                "Missing Clickjacking Protection (X-Frame-Options / CSP)", owasp=misconfig,
            ))

        # 2. MIME Sniffing
        if "x-content-type-options" not in headers:
            result.add(self.finding(
                url, Severity.LOW, "MIME-Sniffing",
                "Missing X-Content-Type-Options: nosniff", owasp=misconfig,
            ))

        # 3. CORS Misconfig (Wildcard)
        if headers.get("access-control-allow-origin") == "*":
            result.add(self.finding(
                url, Severity.MEDIUM, "CORS-Misconfiguration",
                "CORS Misconfiguration: Access-Control-Allow-Origin: *", owasp="A01-Broken-Access-Control",
            ))

        # 4. HSTS
        if "strict-transport-security" not in headers and url.startswith("https"):
            result.add(self.finding(
                url, Severity.MEDIUM, "Missing-HSTS",
                "Missing HSTS Header", owasp="A02-Cryptographic-Failures",
            ))

        # 5. Version disclosure
        for name in ("server", "x-powered-by"):
            value = headers.get(name)
            if value and VERSION_RE.search(value):
                result.add(self.finding(
                    url, Severity.LOW, "Information-Disclosure",
                    f"{name.title()} header discloses version: {value}",
                    owasp=misconfig, cwe="CWE-200", evidence=f"{name}: {value}",
                ))
