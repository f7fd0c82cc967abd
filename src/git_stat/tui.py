"""
Interactive summary viewer.

A read-only curses table over SummaryRows: arrow keys / j,k scroll,
PgUp/PgDn/Home/End jump, `/` filters rows by substring, q or Esc quits.
"""

from __future__ import annotations

import curses
import dataclasses
from typing import List, Sequence

from .aggregate import summary_totals
from .models import SummaryRow
from .render import TABLE_HEADERS, column_widths, fmt_int, format_line, summary_cells

STATUS_TEXT = "q/Esc: quit  ↑/↓: move  PgUp/PgDn: page  /: filter"


@dataclasses.dataclass
class TableCursor:
    """Selection and scroll offset over `count` rows shown `height` at a time."""

    count: int
    height: int
    selected: int = 0
    top: int = 0

    def _clamp(self) -> None:
        self.height = max(1, self.height)
        if self.count <= 0:
            self.selected = 0
            self.top = 0
            return
        self.selected = max(0, min(self.count - 1, self.selected))
        if self.selected < self.top:
            self.top = self.selected
        if self.selected >= self.top + self.height:
            self.top = self.selected - self.height + 1
        self.top = max(0, min(self.top, max(0, self.count - self.height)))

    def move(self, delta: int) -> None:
        self.selected += delta
        self._clamp()

    def page(self, direction: int) -> None:
        self.move(direction * self.height)

    def home(self) -> None:
        self.selected = 0
        self._clamp()

    def end(self) -> None:
        self.selected = self.count - 1
        self._clamp()

    def resize(self, height: int) -> None:
        self.height = height
        self._clamp()


def filter_rows(rows: Sequence[SummaryRow], query: str) -> List[SummaryRow]:
    q = (query or "").strip().lower()
    if not q:
        return list(rows)
    return [r for r in rows if q in r.repo.lower() or q in r.branch.lower() or q in r.author.lower()]


def _draw(stdscr, rows: List[SummaryRow], cursor: TableCursor, query: str) -> None:
    stdscr.erase()
    height, width = stdscr.getmaxyx()
    body = [summary_cells(r, 40) for r in rows]
    ins, dele = summary_totals(rows)
    footer = ["Total", "", "", fmt_int(ins), fmt_int(dele)]
    widths = column_widths(TABLE_HEADERS, [*body, footer])

    stdscr.attron(curses.A_BOLD)
    stdscr.addnstr(0, 0, format_line(TABLE_HEADERS, widths), width - 1)
    stdscr.attroff(curses.A_BOLD)
    for i in range(cursor.height):
        idx = cursor.top + i
        if idx >= len(body):
            break
        line = format_line(body[idx], widths)
        if idx == cursor.selected:
            stdscr.attron(curses.A_REVERSE)
            stdscr.addnstr(1 + i, 0, line, width - 1)
            stdscr.attroff(curses.A_REVERSE)
        else:
            stdscr.addnstr(1 + i, 0, line, width - 1)

    stdscr.addnstr(height - 3, 0, format_line(footer, widths), width - 1)
    position = f"{cursor.selected + 1}/{len(rows)}" if rows else "0/0"
    stdscr.addnstr(height - 2, 0, f"{STATUS_TEXT}  [{position}]", width - 1)
    stdscr.addnstr(height - 1, 0, f"Filter: {query}", width - 1)
    stdscr.refresh()


def run_table_viewer(rows: Sequence[SummaryRow]) -> None:
    all_rows = list(rows)

    def _main(stdscr) -> None:
        curses.curs_set(0)
        stdscr.keypad(True)
        query = ""
        shown = list(all_rows)
        height, _ = stdscr.getmaxyx()
        # header line plus footer, status and filter lines
        cursor = TableCursor(count=len(shown), height=height - 4)

        while True:
            height, width = stdscr.getmaxyx()
            cursor.resize(height - 4)
            _draw(stdscr, shown, cursor, query)

            ch = stdscr.getch()
            if ch in (ord("q"), 27):
                return
            if ch in (curses.KEY_UP, ord("k")):
                cursor.move(-1)
            elif ch in (curses.KEY_DOWN, ord("j")):
                cursor.move(1)
            elif ch == curses.KEY_NPAGE:
                cursor.page(1)
            elif ch == curses.KEY_PPAGE:
                cursor.page(-1)
            elif ch == curses.KEY_HOME:
                cursor.home()
            elif ch == curses.KEY_END:
                cursor.end()
            elif ch == ord("/"):
                curses.echo()
                curses.curs_set(1)
                stdscr.move(height - 1, 0)
                stdscr.clrtoeol()
                stdscr.addnstr(height - 1, 0, "Filter: ", width - 1)
                query = stdscr.getstr(height - 1, 8, max(1, width - 9)).decode("utf-8", "replace")
                curses.noecho()
                curses.curs_set(0)
                shown = filter_rows(all_rows, query)
                cursor = TableCursor(count=len(shown), height=height - 4)

    curses.wrapper(_main)
