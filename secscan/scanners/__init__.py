from .base import SecurityScanner
from .network import NetworkSecurityScanner
from .web import WebSecurityScanner
from .code import CodeSecurityScanner
from .configuration import ConfigurationSecurityScanner
from .tools import ToolSecurityScanner

SCANNERS = {
    "network": NetworkSecurityScanner,
    "web": WebSecurityScanner,
    "code": CodeSecurityScanner,
    "config": ConfigurationSecurityScanner,
    "tools": ToolSecurityScanner,
}
