import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

import yaml

from .exceptions import ConfigError
from .metadata import EXTERNAL_TOOLS, TOOL_PROFILES

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "default_config.yaml")
LIST_KEYS = ("ports", "extensions", "exclude_dirs", "tools")


@dataclass
class ScanConfig:
    ports: List[int] = field(default_factory=lambda: [21, 22, 23, 80, 443, 3306, 3389, 5432, 6379, 8080])
    timeout: float = 1.0
    concurrency: int = 20
    verify_tls: bool = True
    cert_expiry_warning_days: int = 30
    extensions: List[str] = field(default_factory=lambda: [".py", ".js", ".ts", ".java", ".php", ".go"])
    exclude_dirs: List[str] = field(default_factory=lambda: ["node_modules", ".git", "__pycache__"])
    max_file_size: int = 1024 * 1024
    output_dir: str = "security-reports"
    user_agent: str = "secscan/1.0"
    tool_profile: str = "comprehensive"
    tools: List[str] = field(default_factory=list)
    tool_timeout: float = 300.0

    def __post_init__(self):
        self.validate()

    def validate(self):
        for key in LIST_KEYS:
            if not isinstance(getattr(self, key), (list, tuple)):
                raise ConfigError(f"{key} must be a list, got {type(getattr(self, key)).__name__}")
        try:
            self.ports = [int(p) for p in self.ports]
            self.timeout = float(self.timeout)
            self.concurrency = int(self.concurrency)
            self.cert_expiry_warning_days = int(self.cert_expiry_warning_days)
            self.max_file_size = int(self.max_file_size)
            self.tool_timeout = float(self.tool_timeout)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration value: {e}") from e

        bad = [p for p in self.ports if not 1 <= p <= 65535]
        if bad:
            raise ConfigError(f"Ports out of range (1-65535): {bad}")
        if self.timeout <= 0:
            raise ConfigError("timeout must be greater than 0")
        if self.concurrency < 1:
            raise ConfigError("concurrency must be at least 1")
        if self.max_file_size < 1:
            raise ConfigError("max_file_size must be at least 1")
        if self.tool_timeout <= 0:
            raise ConfigError("tool_timeout must be greater than 0")
        if self.tool_profile not in TOOL_PROFILES:
            raise ConfigError(f"Unknown tool profile: {self.tool_profile} (expected one of {', '.join(TOOL_PROFILES)})")
        self.tools = [str(t).lower() for t in self.tools]
        unknown = [t for t in self.tools if t not in EXTERNAL_TOOLS]
        if unknown:
            raise ConfigError(f"Unsupported tools: {', '.join(unknown)}")
        self.extensions = [e if e.startswith(".") else f".{e}" for e in (x.lower() for x in self.extensions)]

    def override(self, **kwargs) -> "ScanConfig":
        """Applies non-None overrides (CLI flags win over file values)."""
        for key, value in kwargs.items():
            if value is None:
                continue
            if not hasattr(self, key):
                raise ConfigError(f"Unknown configuration key: {key}")
            setattr(self, key, value)
        self.validate()
        return self

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScanConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**data)


def load_config(path: Optional[str] = None) -> ScanConfig:
    """Loads a YAML config file. Falls back to the packaged defaults when no path is given."""
    path = path or DEFAULT_CONFIG_PATH
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return ScanConfig.from_dict(data)
