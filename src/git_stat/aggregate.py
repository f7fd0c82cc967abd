from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable

from .models import CommitRecord, SummaryRow


def aggregate(records: Iterable[CommitRecord]) -> list[SummaryRow]:
    """
    Sum insertions and deletions per (repo, branch, author).

    Rows come back ordered by repo then branch; authors are ordered within a
    tie only to keep output stable.
    """
    totals: dict[tuple[str, str, str], list[int]] = defaultdict(lambda: [0, 0])
    for r in records:
        cur = totals[(r.repo, r.branch, r.author)]
        cur[0] += int(r.insertions)
        cur[1] += int(r.deletions)

    rows = [
        SummaryRow(repo=repo, branch=branch, author=author, insertions=ins, deletions=dele)
        for (repo, branch, author), (ins, dele) in totals.items()
    ]
    rows.sort(key=lambda s: (s.repo, s.branch, s.author))
    return rows


def summary_totals(rows: Iterable[SummaryRow]) -> tuple[int, int]:
    ins = 0
    dele = 0
    for row in rows:
        ins += row.insertions
        dele += row.deletions
    return ins, dele
