import socket
from concurrent.futures import ThreadPoolExecutor
from typing import List
from urllib.parse import urlparse

from ..exceptions import ScanError
from ..metadata import RISKY_PORTS
from ..models import ScanResult
from ..utils import log_debug
from .base import SecurityScanner


def resolve(host: str) -> List[str]:
    """DNS lookup. Returns the unique addresses of `host`, sorted."""
    try:
        infos = socket.getaddrinfo(host, None, proto=socket.IPPROTO_TCP)
    except socket.gaierror as e:
        raise ScanError(f"DNS resolution failed for {host}: {e}") from e
    return sorted({info[4][0] for info in infos})


def probe_port(host: str, port: int, timeout: float) -> bool:
    """TCP connect scan of a single port."""
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except (socket.timeout, ConnectionRefusedError, OSError):
        return False


def host_of(target: str) -> str:
    if "://" in target:
        return urlparse(target).hostname or target
    # host:port
    if target.count(":") == 1:
        return target.split(":", 1)[0]
    return target


class NetworkSecurityScanner(SecurityScanner):
    NAME = "network"
    DESCRIPTION = "TCP connect scan of well-known ports with risky-service detection."

    def execute(self, target: str, result: ScanResult) -> None:
        host = host_of(target)
        result.data["host"] = host
        result.data["addresses"] = resolve(host)

        ports = sorted(set(self.config.ports))
        log_debug(f"Scanning {len(ports)} ports on {host} (timeout {self.config.timeout}s)")
        open_ports = self.scan_ports(host, ports)
        result.data["open_ports"] = open_ports

        for port in open_ports:
            if port not in RISKY_PORTS:
                continue
            service, severity, reason = RISKY_PORTS[port]
            result.add(self.finding(
                target,
                severity,
                "Exposed-Service",
                f"{service} reachable on port {port}: {reason}",
                owasp="A05-Security-Misconfiguration",
                title=f"Exposed {service} service",
                port=port,
                confidence=1.0,
            ))

    def scan_ports(self, host: str, ports: List[int]) -> List[int]:
        if not ports:
            return []
        if self.config.concurrency == 1:
            states = [probe_port(host, p, self.config.timeout) for p in ports]
        else:
            workers = min(self.config.concurrency, len(ports))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                states = list(executor.map(lambda p: probe_port(host, p, self.config.timeout), ports))
        return [p for p, is_open in zip(ports, states) if is_open]
