from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import DEFAULT_CONFIG_PATH
from .dates import parse_since, parse_until
from .errors import DateParseError
from .run import run_stats

LOG_FORMAT = "%(asctime)s %(levelname)s %(threadName)s %(name)s: %(message)s"


def _date_arg(parse):
    def _parse(value: str):
        try:
            return parse(value)
        except DateParseError as e:
            raise argparse.ArgumentTypeError(str(e)) from e

    return _parse


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="git-stat",
        description="Per-author insertion/deletion totals across many git repos and branches.",
    )
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path to .git-stat.yml (or a .json config).")
    parser.add_argument("--workdir", type=Path, default=None, help="Where repos are cloned (default: config `workdir` or ./repos).")
    parser.add_argument("--since", type=_date_arg(parse_since), default=None, help="First day to count, YYYY-MM-DD (from 00:00:00 local).")
    parser.add_argument("--until", type=_date_arg(parse_until), default=None, help="Last day to count, YYYY-MM-DD (to 23:59:59 local).")
    parser.add_argument("--force-update", action="store_true", help="Fetch configured branches from origin before walking.")
    parser.add_argument("--source", type=str, default="", help="Summarize an existing detail CSV instead of walking repos.")
    parser.add_argument("--detail", type=str, default="detail.csv", help="Per-commit detail CSV to write.")
    parser.add_argument("--no-detail", action="store_true", help="Do not write the detail CSV.")
    parser.add_argument("-F", "--format", choices=["table", "csv", "tui"], default="table", help="Summary output format.")
    parser.add_argument("--output", type=str, default="report.csv", help="Summary CSV path for --format csv.")
    parser.add_argument("--jobs", type=int, default=None, help="Parallel repo workers (default: one per repo).")
    parser.add_argument("--fail-fast", action="store_true", help="Abort the whole run on the first failing repo.")
    parser.add_argument(
        "--only-known-authors",
        action="store_true",
        help="Drop commits whose author is not a canonical name or alias in the config.",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Also log per-commit decisions (debug).")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors.")
    return parser


def _log_level(verbosity: int, quiet: bool = False) -> int:
    if quiet:
        return logging.WARNING
    if verbosity >= 1:
        return logging.DEBUG
    return logging.INFO


def _configure_logging(level: int) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.jobs is not None and args.jobs < 1:
        parser.error("--jobs must be at least 1")
    _configure_logging(_log_level(args.verbose, args.quiet))
    return run_stats(args=args)
