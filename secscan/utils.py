import os
import re
import sys

from colorama import Fore, Style, init

init(autoreset=True)

_VERBOSE = False

QUOTED_LITERAL = re.compile(r"(['\"])(.*?)\1")


def set_verbose(enabled: bool):
    global _VERBOSE
    _VERBOSE = bool(enabled)


def is_verbose() -> bool:
    return _VERBOSE


def log_info(msg: str):
    print(f"[*] {msg}")


def log_success(msg: str):
    print(f"{Fore.GREEN}[+] {msg}{Style.RESET_ALL}")


def log_warning(msg: str):
    print(f"{Fore.YELLOW}[!] {msg}{Style.RESET_ALL}", file=sys.stderr)


def log_error(msg: str):
    print(f"{Fore.RED}[-] {msg}{Style.RESET_ALL}", file=sys.stderr)


def log_debug(msg: str):
    """Only printed with --verbose."""
    if _VERBOSE:
        print(f"{Style.DIM}    {msg}{Style.RESET_ALL}")


def create_folder(path: str):
    """Utility to create a folder if it doesn't exist."""
    if not os.path.exists(path):
        os.makedirs(path)


def mask_secret(text: str, keep: int = 3) -> str:
    """Masks quoted literals in a line, keeping a short prefix of each."""
    def _mask(m) -> str:
        value = m.group(2)
        if len(value) <= keep:
            hidden = "*" * len(value)
        else:
            hidden = value[:keep] + "*" * (len(value) - keep)
        return f"{m.group(1)}{hidden}{m.group(1)}"

    return QUOTED_LITERAL.sub(_mask, text)
