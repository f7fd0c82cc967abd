from __future__ import annotations

import logging
from collections.abc import Iterable

from .models import AliasTable, CommitRecord

logger = logging.getLogger(__name__)


def resolve_author(author: str, aliases: AliasTable) -> str:
    return aliases.lookup(author)


def resolve_authors(
    records: Iterable[CommitRecord],
    aliases: AliasTable,
    *,
    only_known: bool = False,
) -> list[CommitRecord]:
    """
    Rewrite each record's raw author to its canonical name.

    Lookup is exact-match and authors without an alias entry are kept as they
    are. With `only_known`, records whose resolved author is not one of the
    table's canonical names are dropped afterwards.
    """
    out: list[CommitRecord] = []
    dropped = 0
    for r in records:
        author = resolve_author(r.author, aliases)
        if only_known and author not in aliases.canonical:
            dropped += 1
            continue
        out.append(r if author == r.author else r.with_author(author))
    if dropped:
        logger.info("dropped %d records from authors outside the alias table", dropped)
    return out
