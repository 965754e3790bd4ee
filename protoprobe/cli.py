"""
Command-line entry point.

Usage:
    protoprobe probe hosts.txt [report.csv] [--timeout 10] [--concurrency 8]
    protoprobe extract top-1m.csv [-o domains.txt]

Environment:
    PROTOPROBE_TIMEOUT, PROTOPROBE_USER_AGENT, PROTOPROBE_MAX_REDIRECTS,
    PROTOPROBE_CONCURRENCY and PROTOPROBE_VERIFY set defaults that command
    line flags override.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from . import __version__
from .config import ProbeConfig
from .errors import InputSourceError, ReportError
from .hosts import extract_domains, write_domains
from .runner import run_probe

log = logging.getLogger("protoprobe")

DEFAULT_REPORT = "http_protocol_report.csv"
DEFAULT_DOMAINS = "domains.txt"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="protoprobe",
        description="Detect whether hosts negotiate HTTP/3, HTTP/2 or HTTP/1.1.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Log every attempt.")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors.")
    sub = parser.add_subparsers(dest="command", required=True)

    probe = sub.add_parser("probe", help="Probe a host list and write a CSV report.")
    probe.add_argument("input", help="Text file with one host or URL per line.")
    probe.add_argument("output", nargs="?", default=DEFAULT_REPORT, help="Report path.")
    probe.add_argument("--timeout", type=float, help="Seconds per attempt (default 10).")
    probe.add_argument("--user-agent", help="User-Agent header to send.")
    probe.add_argument("--max-redirects", type=int, help="Redirect hops to follow (default 10).")
    probe.add_argument("--concurrency", type=int, help="Hosts probed at once (default 1).")
    probe.add_argument(
        "--insecure",
        action="store_true",
        help="Skip TLS certificate verification.",
    )

    extract = sub.add_parser("extract", help="Pull the domain column out of a ranking CSV.")
    extract.add_argument("csv", help="CSV such as rank,domain with a header row.")
    extract.add_argument("-o", "--output", default=DEFAULT_DOMAINS, help="Domain list path.")
    extract.add_argument("--column", type=int, default=1, help="Zero-based domain column.")
    return parser


def _configure_logging(args: argparse.Namespace) -> None:
    level = logging.INFO
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _probe(args: argparse.Namespace) -> int:
    config = ProbeConfig.from_env().with_overrides(
        timeout=args.timeout,
        user_agent=args.user_agent,
        max_redirects=args.max_redirects,
        concurrency=args.concurrency,
        verify=False if args.insecure else None,
    )
    run_probe(args.input, args.output, config)
    return 0


def _extract(args: argparse.Namespace) -> int:
    count = write_domains(extract_domains(args.csv, args.column), args.output)
    log.info("Domains have been extracted to %s (%d lines)", args.output, count)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args)

    handler = _probe if args.command == "probe" else _extract
    try:
        return handler(args)
    except (InputSourceError, ReportError) as exc:
        log.error("%s", exc)
        return 1
    except ValueError as exc:
        log.error("Invalid configuration: %s", exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
