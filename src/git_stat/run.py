from __future__ import annotations

import argparse
import datetime as dt
import subprocess
import sys
from collections.abc import Iterable
from pathlib import Path

from .aggregate import aggregate
from .collect import collect_records
from .config import GitStatConfig, load_config
from .dates import filter_by_date
from .detail import read_detail_csv, write_detail_csv, write_summary_csv
from .errors import ConfigError, GitStatError
from .identity import resolve_authors
from .models import AliasTable, CommitRecord, SummaryRow
from .render import render_summary_table


def summarize(
    records: Iterable[CommitRecord],
    aliases: AliasTable,
    *,
    since: dt.datetime | None = None,
    until: dt.datetime | None = None,
    only_known_authors: bool = False,
) -> list[SummaryRow]:
    resolved = resolve_authors(records, aliases, only_known=only_known_authors)
    return aggregate(filter_by_date(resolved, since, until))


def _fmt_bound(value: dt.datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value is not None else "-"


def _print_header(*, args: argparse.Namespace, config: GitStatConfig, workdir: Path) -> None:
    lines = [
        "git-stat",
        "",
        f"- Config: {args.config}",
        f"- Source: {args.source if args.source else f'{len(config.repos)} repos under {workdir}'}",
        f"- Window: {_fmt_bound(args.since)} .. {_fmt_bound(args.until)}",
        f"- Update remotes: {'yes' if args.force_update else 'no'}  Jobs: {args.jobs or 'one per repo'}  Fail fast: {'yes' if args.fail_fast else 'no'}",
        "",
    ]
    print("\n".join(lines))


def _load(args: argparse.Namespace) -> GitStatConfig:
    if args.source and not Path(args.config).exists():
        # a detail file can be summarized without any repository config
        return GitStatConfig(repos=(), aliases=AliasTable())
    return load_config(Path(args.config))


def _write(path: Path, what: str, writer) -> int:
    try:
        return writer(path)
    except OSError as e:
        raise SystemExit(f"Failed to write {what} {path}: {e}") from e


def run_stats(*, args: argparse.Namespace) -> int:
    try:
        config = _load(args)
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2
    workdir = Path(args.workdir) if args.workdir else config.workdir

    _print_header(args=args, config=config, workdir=workdir)

    failures: dict[str, Exception] = {}
    if args.source:
        try:
            records = read_detail_csv(Path(args.source))
        except ConfigError as e:
            print(f"Detail file error: {e}", file=sys.stderr)
            return 2
        print(f"Loaded {len(records)} detail rows from {args.source}")
    else:
        if not config.repos:
            print(f"No repos configured in {args.config}", file=sys.stderr)
            return 2
        try:
            result = collect_records(
                config.repos,
                workdir,
                force_update=bool(args.force_update),
                jobs=args.jobs,
                fail_fast=bool(args.fail_fast),
            )
        except (GitStatError, OSError, subprocess.SubprocessError) as e:
            print(f"Aborted: {e}", file=sys.stderr)
            return 2
        records = result.records
        failures = result.failures
        print(f"Collected {len(records)} commits from {len(result.outcomes) - len(failures)}/{len(result.outcomes)} repos.")
        for name, err in sorted(failures.items()):
            print(f"Repository failed: {name}: {err}", file=sys.stderr)

    if args.detail and not args.no_detail:
        detail_path = Path(args.detail)
        n = _write(detail_path, "detail file", lambda p: write_detail_csv(p, records))
        print(f"Wrote {n} detail rows to {detail_path}")

    rows = summarize(
        records,
        config.aliases,
        since=args.since,
        until=args.until,
        only_known_authors=bool(args.only_known_authors),
    )

    if args.format == "csv":
        out = Path(args.output)
        n = _write(out, "summary file", lambda p: write_summary_csv(p, rows))
        print(f"Wrote {n} summary rows to {out}")
    elif args.format == "tui":
        if not (sys.stdin.isatty() and sys.stdout.isatty()):
            raise SystemExit("--format tui needs an interactive terminal; use --format table or csv")
        from .tui import run_table_viewer

        run_table_viewer(rows)
    else:
        print(render_summary_table(rows))

    if failures:
        print(f"Done with {len(failures)} failed repo(s).", file=sys.stderr)
        return 2
    print("Done.")
    return 0
