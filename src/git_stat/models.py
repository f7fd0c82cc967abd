from __future__ import annotations

import dataclasses
import datetime as dt
from pathlib import Path

from .paths import PathspecRule

DETAIL_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclasses.dataclass(frozen=True)
class CommitRecord:
    repo: str
    date: dt.datetime | None  # aware, local time zone
    branch: str
    commit_id: str
    author: str
    message: str
    insertions: int = 0
    deletions: int = 0

    def with_author(self, author: str) -> CommitRecord:
        return dataclasses.replace(self, author=author)

    def format_date(self) -> str:
        if self.date is None:
            return ""
        return self.date.strftime(DETAIL_DATE_FORMAT)


@dataclasses.dataclass(frozen=True)
class Credentials:
    username: str = ""
    password: str = ""

    @property
    def is_anonymous(self) -> bool:
        return not self.username and not self.password


@dataclasses.dataclass(frozen=True)
class RepoSpec:
    url: str
    name: str
    branches: tuple[str, ...]
    pathspec: tuple[PathspecRule, ...] = ()
    credentials: Credentials | None = None


@dataclasses.dataclass(frozen=True)
class RepoHandle:
    """A checkout at `path` owned by exactly one worker for the whole run."""

    name: str
    path: Path
    spec: RepoSpec


@dataclasses.dataclass(frozen=True)
class AliasTable:
    aliases: dict[str, str] = dataclasses.field(default_factory=dict)  # alias -> canonical
    canonical: frozenset[str] = frozenset()

    @classmethod
    def from_authors(cls, authors: dict[str, list[str]]) -> AliasTable:
        aliases: dict[str, str] = {}
        for name, names in authors.items():
            for alias in names:
                aliases[alias] = name
        return cls(aliases=aliases, canonical=frozenset(authors))

    def lookup(self, author: str) -> str:
        return self.aliases.get(author, author)


@dataclasses.dataclass(frozen=True)
class SummaryRow:
    repo: str
    branch: str
    author: str
    insertions: int = 0
    deletions: int = 0

    @property
    def changed(self) -> int:
        return self.insertions + self.deletions


@dataclasses.dataclass
class RepoOutcome:
    name: str
    records: list[CommitRecord]
    error: Exception | None = None
    elapsed_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclasses.dataclass
class CollectResult:
    outcomes: list[RepoOutcome]

    @property
    def records(self) -> list[CommitRecord]:
        out: list[CommitRecord] = []
        for o in self.outcomes:
            out.extend(o.records)
        return out

    @property
    def failures(self) -> dict[str, Exception]:
        return {o.name: o.error for o in self.outcomes if o.error is not None}
