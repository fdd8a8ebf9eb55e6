class SecScanError(Exception):
    """Base class for all scanner errors."""


class ConfigError(SecScanError):
    """Invalid or unreadable configuration."""


class ScanError(SecScanError):
    """A scan could not be carried out (bad target, unknown action, DNS failure)."""
