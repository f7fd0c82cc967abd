from __future__ import annotations

import datetime as dt
from collections.abc import Iterable

from .errors import DateParseError
from .models import DETAIL_DATE_FORMAT, CommitRecord

START_OF_DAY = dt.time(0, 0, 0)
END_OF_DAY = dt.time(23, 59, 59)


def local_datetime(naive: dt.datetime) -> dt.datetime:
    return naive.astimezone()


def parse_day(value: str, at: dt.time) -> dt.datetime:
    s = (value or "").strip()
    try:
        day = dt.datetime.strptime(s, "%Y-%m-%d").date()
    except ValueError as e:
        raise DateParseError(f"Invalid date: {value!r} (expected YYYY-MM-DD)") from e
    return local_datetime(dt.datetime.combine(day, at))


def parse_since(value: str) -> dt.datetime:
    return parse_day(value, START_OF_DAY)


def parse_until(value: str) -> dt.datetime:
    return parse_day(value, END_OF_DAY)


def parse_detail_date(value: str) -> dt.datetime | None:
    s = (value or "").strip()
    if not s:
        return None
    try:
        return local_datetime(dt.datetime.strptime(s, DETAIL_DATE_FORMAT))
    except ValueError as e:
        raise DateParseError(f"Invalid detail date: {value!r} (expected YYYY-MM-DD HH:MM:SS)") from e


def in_range(when: dt.datetime | None, since: dt.datetime | None, until: dt.datetime | None) -> bool:
    if when is None:
        return False
    if since is not None and when < since:
        return False
    if until is not None and when > until:
        return False
    return True


def filter_by_date(
    records: Iterable[CommitRecord],
    since: dt.datetime | None = None,
    until: dt.datetime | None = None,
) -> list[CommitRecord]:
    """Keep dated records inside the inclusive [since, until] window."""
    return [r for r in records if in_range(r.date, since, until)]
