from __future__ import annotations

import dataclasses
import fnmatch
import re

EXCLUDE_PREFIXES = (":(exclude)", ":!", "!")

_ESCAPES = {'"': '"', "\\": "\\", "t": "\t", "n": "\n"}
_QUOTED_ESCAPE = re.compile(r'\\(["\\tn])')


def normalize_path(path: str) -> str:
    p = path.strip().replace("\\", "/")
    while p.startswith("./"):
        p = p[2:]
    return p


@dataclasses.dataclass(frozen=True)
class PathspecRule:
    pattern: str
    exclude: bool = False

    def matches(self, path: str) -> bool:
        p = normalize_path(path)
        pat = normalize_path(self.pattern).rstrip("/")
        if not pat:
            return False
        # `*` crosses directory separators and a bare name also selects everything below it.
        if p == pat or p.startswith(pat + "/"):
            return True
        return fnmatch.fnmatchcase(p, pat)


def parse_pathspec_entry(entry: str) -> PathspecRule:
    s = (entry or "").strip()
    for prefix in EXCLUDE_PREFIXES:
        if s.startswith(prefix):
            return PathspecRule(pattern=s[len(prefix) :].strip(), exclude=True)
    return PathspecRule(pattern=s, exclude=False)


def parse_pathspec(entries: list[str]) -> tuple[PathspecRule, ...]:
    rules: list[PathspecRule] = []
    for entry in entries:
        rule = parse_pathspec_entry(entry)
        if rule.pattern:
            rules.append(rule)
    return tuple(rules)


def path_selected(path: str, rules: tuple[PathspecRule, ...] | list[PathspecRule]) -> bool:
    """
    Decide whether `path` takes part in a diff.

    Rules are checked in declaration order and the first matching rule wins, so
    an exclusion only takes effect when it is listed before the inclusion that
    would otherwise match the path. A path no rule matches is never selected,
    so a list made only of exclusions selects nothing.
    """
    if not rules:
        return True
    for rule in rules:
        if rule.matches(path):
            return not rule.exclude
    return False


def normalize_numstat_path(path: str) -> str:
    p = path.strip()
    # git still quotes paths holding quotes, backslashes or control characters
    if len(p) >= 2 and p.startswith('"') and p.endswith('"'):
        p = _QUOTED_ESCAPE.sub(lambda m: _ESCAPES[m.group(1)], p[1:-1])
    return p
