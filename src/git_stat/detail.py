from __future__ import annotations

import csv
from collections.abc import Iterable
from pathlib import Path

from .dates import parse_detail_date
from .errors import ConfigError, DateParseError
from .models import CommitRecord, SummaryRow

DETAIL_FIELDS = ["repo", "date", "branch", "commit_id", "author", "message", "insertions", "deletions"]
SUMMARY_FIELDS = ["repo", "branch", "author", "insertions", "deletions"]


def detail_row(r: CommitRecord) -> dict[str, str]:
    return {
        "repo": r.repo,
        "date": r.format_date(),
        "branch": r.branch,
        "commit_id": r.commit_id,
        "author": r.author,
        "message": r.message,
        "insertions": str(int(r.insertions)),
        "deletions": str(int(r.deletions)),
    }


def summary_row(s: SummaryRow) -> dict[str, str]:
    return {
        "repo": s.repo,
        "branch": s.branch,
        "author": s.author,
        "insertions": str(int(s.insertions)),
        "deletions": str(int(s.deletions)),
    }


def write_detail_csv(path: Path, records: Iterable[CommitRecord]) -> int:
    n = 0
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=DETAIL_FIELDS)
        writer.writeheader()
        for r in records:
            writer.writerow(detail_row(r))
            n += 1
    return n


def write_summary_csv(path: Path, rows: Iterable[SummaryRow]) -> int:
    n = 0
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=SUMMARY_FIELDS)
        writer.writeheader()
        for s in rows:
            writer.writerow(summary_row(s))
            n += 1
    return n


def _count(value: str | None, field: str, line: int, path: Path) -> int:
    s = (value or "").strip()
    if not s:
        return 0
    try:
        n = int(s)
    except ValueError as e:
        raise ConfigError(f"{path}:{line}: {field} is not an integer: {s!r}") from e
    if n < 0:
        raise ConfigError(f"{path}:{line}: {field} must not be negative: {n}")
    return n


def read_detail_csv(path: Path) -> list[CommitRecord]:
    """Load rows written by `write_detail_csv` (the `--source` input)."""
    if not path.exists():
        raise ConfigError(f"detail file not found: {path}")
    records: list[CommitRecord] = []
    with path.open("r", newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        missing = [k for k in DETAIL_FIELDS if k not in (reader.fieldnames or [])]
        if missing:
            raise ConfigError(f"{path}: missing detail columns: {', '.join(missing)}")
        for row in reader:
            line = reader.line_num
            try:
                date = parse_detail_date(row.get("date") or "")
            except DateParseError as e:
                raise ConfigError(f"{path}:{line}: {e}") from e
            records.append(
                CommitRecord(
                    repo=row.get("repo") or "",
                    date=date,
                    branch=row.get("branch") or "",
                    commit_id=row.get("commit_id") or "",
                    author=row.get("author") or "",
                    message=row.get("message") or "",
                    insertions=_count(row.get("insertions"), "insertions", line, path),
                    deletions=_count(row.get("deletions"), "deletions", line, path),
                )
            )
    return records
