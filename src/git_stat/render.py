from __future__ import annotations

from collections.abc import Sequence

from .aggregate import summary_totals
from .models import SummaryRow

TABLE_HEADERS = ("repo", "branch", "author", "insertions", "deletions")
NUMERIC_COLUMNS = frozenset({"insertions", "deletions"})


def fmt_int(n: int) -> str:
    return f"{int(n):,}"


def trunc(s: str, max_len: int) -> str:
    if len(s) <= max_len:
        return s
    if max_len <= 1:
        return s[:max_len]
    return s[: max_len - 1] + "…"


def summary_cells(row: SummaryRow, max_width: int) -> list[str]:
    return [
        trunc(row.repo, max_width),
        trunc(row.branch, max_width),
        trunc(row.author, max_width),
        fmt_int(row.insertions),
        fmt_int(row.deletions),
    ]


def column_widths(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> list[int]:
    widths = [len(h) for h in headers]
    for cells in rows:
        for i, cell in enumerate(cells):
            widths[i] = max(widths[i], len(cell))
    return widths


def format_line(cells: Sequence[str], widths: Sequence[int], headers: Sequence[str] = TABLE_HEADERS) -> str:
    parts: list[str] = []
    for cell, width, name in zip(cells, widths, headers):
        parts.append(cell.rjust(width) if name in NUMERIC_COLUMNS else cell.ljust(width))
    return "  ".join(parts).rstrip()


def render_summary_table(rows: Sequence[SummaryRow], max_width: int = 40) -> str:
    if not rows:
        return "(no commits matched)"
    body = [summary_cells(r, max_width) for r in rows]
    ins, dele = summary_totals(rows)
    footer = ["Total", "", "", fmt_int(ins), fmt_int(dele)]
    widths = column_widths(TABLE_HEADERS, [*body, footer])

    lines = [format_line(TABLE_HEADERS, widths)]
    lines.append(format_line(["-" * w for w in widths], widths))
    lines.extend(format_line(cells, widths) for cells in body)
    lines.append(format_line(["-" * w for w in widths], widths))
    lines.append(format_line(footer, widths))
    return "\n".join(lines)
