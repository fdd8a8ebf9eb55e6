import argparse
import sys

from colorama import Fore, Style, init

from . import __version__
from .config import load_config
from .engine import ACTIONS, Engine
from .exceptions import SecScanError
from .metadata import TOOL_PROFILES
from .models import Severity
from .reporting import ConsoleReporter, exceeds_threshold, generate_json_report
from .reporting.sarif import SarifReporter
from .utils import log_error, log_info, log_warning, set_verbose

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_FINDINGS = 2
EXIT_INTERRUPTED = 130


def parse_ports(value: str):
    """'22,80,8000-8010' -> [22, 80, 8000, ..., 8010]"""
    ports = []
    try:
        for part in value.split(","):
            part = part.strip()
            if not part:
                continue
            if "-" in part:
                lo, hi = part.split("-", 1)
                ports.extend(range(int(lo), int(hi) + 1))
            else:
                ports.append(int(part))
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port list: {value}")
    return ports


def parse_list(value: str):
    return [part.strip() for part in value.split(",") if part.strip()]


class ArgumentParser(argparse.ArgumentParser):
    """Usage errors exit with EXIT_ERROR so that 2 always means findings."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EXIT_ERROR, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = ArgumentParser(
        prog="secscan",
        description="Network, web, source code and configuration security scanner",
        formatter_class=argparse.RawTextHelpFormatter
    )
    parser.add_argument("-v", "--version", action="version", version=f"secscan v{__version__}")
    parser.add_argument("action", choices=ACTIONS, help="Scan to run")
    parser.add_argument("target", help="Host, URL, file or directory")

    conf_group = parser.add_argument_group("Configuration")
    conf_group.add_argument("--config", help="Path to YAML config file (default: packaged defaults)")
    conf_group.add_argument("--ports", type=parse_ports, help="Ports to scan, e.g. 22,80,8000-8010")
    conf_group.add_argument("--timeout", type=float, help="Connect/request timeout in seconds")
    conf_group.add_argument("--concurrency", type=int, help="Parallel port probes")
    conf_group.add_argument("--insecure", action="store_true", help="Do not verify TLS certificates")
    conf_group.add_argument("--profile", choices=list(TOOL_PROFILES), help="External tool set for the 'tools' action")
    conf_group.add_argument("--tools", type=parse_list, help="Explicit external tools, e.g. bandit,semgrep (replaces --profile)")
    conf_group.add_argument("--verbose", action="store_true")

    out_group = parser.add_argument_group("Reporting")
    out_group.add_argument("--output-path", help="Directory for the JSON report")
    out_group.add_argument("--no-report", action="store_true", help="Skip writing the JSON report")
    out_group.add_argument("--sarif-report", help="Path to SARIF output")
    out_group.add_argument("--fail-on", type=Severity.from_value, metavar="SEVERITY",
                           help="Exit with code 2 if a finding at or above SEVERITY exists")
    return parser


def run(args: argparse.Namespace) -> int:
    set_verbose(args.verbose)

    config = load_config(args.config)
    config.override(
        ports=args.ports,
        timeout=args.timeout,
        concurrency=args.concurrency,
        output_dir=args.output_path,
        verify_tls=False if args.insecure else None,
        tool_profile=args.profile,
        tools=args.tools,
    )

    print(f"{Fore.CYAN}{Style.BRIGHT}secscan v{__version__}{Style.RESET_ALL}")
    log_info(f"ACTION: {args.action}")
    log_info(f"TARGET: {args.target}")

    report = Engine(config).run(args.action, args.target)
    ConsoleReporter().print_summary(report)

    if not args.no_report:
        generate_json_report(report, config.output_dir)
    if args.sarif_report:
        SarifReporter(args.sarif_report).generate(report)

    if args.fail_on is not None and exceeds_threshold(report, args.fail_on):
        log_warning(f"Findings at or above {args.fail_on.value} detected")
        return EXIT_FINDINGS
    return EXIT_OK


def main(argv=None):
    init(autoreset=True)
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        code = run(args)
    except KeyboardInterrupt:
        log_error("Interrupted (Ctrl+C)")
        code = EXIT_INTERRUPTED
    except SecScanError as e:
        log_error(str(e))
        code = EXIT_ERROR
    except Exception as e:
        log_error(f"CRITICAL FAILURE: {type(e).__name__}: {e}")
        code = EXIT_ERROR
    sys.exit(code)


if __name__ == "__main__":
    main()
