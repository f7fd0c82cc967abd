from __future__ import annotations

import dataclasses
import json
from collections import Counter
from pathlib import Path

import yaml

from .errors import ConfigError
from .git import repo_name_from_url
from .models import AliasTable, Credentials, RepoSpec
from .paths import parse_pathspec

DEFAULT_CONFIG_PATH = Path(".git-stat.yml")
DEFAULT_WORKDIR = Path("repos")


@dataclasses.dataclass(frozen=True)
class GitStatConfig:
    repos: tuple[RepoSpec, ...]
    aliases: AliasTable
    workdir: Path = DEFAULT_WORKDIR


def read_config_file(config_path: Path) -> dict:
    if not config_path.exists():
        raise ConfigError(f"config file not found: {config_path}")
    text = config_path.read_text(encoding="utf-8")
    try:
        if config_path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot parse {config_path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path}: top level must be a mapping")
    return data


def _scalar(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, (str, int, float)):
        return str(value).strip()
    raise ConfigError(f"expected a scalar value, got {type(value).__name__}")


def _str_list(value: object, what: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{what} must be a list of strings")
    return [v.strip() for v in value if v.strip()]


def parse_authors(raw: object) -> AliasTable:
    """
    Accepts either the list form

        authors:
          - name: 26huitailang
            alias: [peterChen]

    or a plain mapping of canonical name -> aliases.
    """
    if raw is None:
        return AliasTable()
    if isinstance(raw, dict):
        entries = [{"name": k, "alias": v} for k, v in raw.items()]
    elif isinstance(raw, list):
        entries = raw
    else:
        raise ConfigError("authors must be a list or a mapping")

    authors: dict[str, list[str]] = {}
    owner: dict[str, str] = {}
    for i, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ConfigError(f"authors[{i}] must be a mapping with `name` and `alias`")
        name = _scalar(entry.get("name"))
        if not name:
            raise ConfigError(f"authors[{i}] has no name")
        aliases = _str_list(entry.get("alias", entry.get("aliases")), f"authors[{i}].alias")
        for alias in aliases:
            prev = owner.get(alias)
            if prev is not None and prev != name:
                raise ConfigError(f"alias {alias!r} is claimed by both {prev!r} and {name!r}")
            owner[alias] = name
        authors.setdefault(name, []).extend(aliases)
    return AliasTable.from_authors(authors)


def parse_repo(entry: object, index: int) -> RepoSpec:
    if not isinstance(entry, dict):
        raise ConfigError(f"repos[{index}] must be a mapping")
    url = _scalar(entry.get("url"))
    if not url:
        raise ConfigError(f"repos[{index}] has no url")
    name = _scalar(entry.get("name")) or repo_name_from_url(url)
    if not name:
        raise ConfigError(f"repos[{index}]: cannot derive a name from url {url!r}")
    branches = _str_list(entry.get("branches"), f"repos[{index}].branches")
    if not branches:
        raise ConfigError(f"repos[{index}] ({name}) lists no branches")

    username = _scalar(entry.get("username"))
    password = _scalar(entry.get("password"))
    credentials = Credentials(username=username, password=password) if (username or password) else None

    return RepoSpec(
        url=url,
        name=name,
        branches=tuple(branches),
        pathspec=parse_pathspec(_str_list(entry.get("pathspec"), f"repos[{index}].pathspec")),
        credentials=credentials,
    )


def check_unique_names(specs: list[RepoSpec] | tuple[RepoSpec, ...]) -> None:
    counts = Counter(s.name for s in specs)
    dups = sorted(name for name, n in counts.items() if n > 1)
    if dups:
        raise ConfigError(f"repositories share a working directory name: {', '.join(dups)}")


def parse_config(data: dict) -> GitStatConfig:
    raw_repos = data.get("repos") or []
    if not isinstance(raw_repos, list):
        raise ConfigError("repos must be a list")
    repos = tuple(parse_repo(entry, i) for i, entry in enumerate(raw_repos))
    check_unique_names(repos)
    workdir = _scalar(data.get("workdir"))
    return GitStatConfig(
        repos=repos,
        aliases=parse_authors(data.get("authors")),
        workdir=Path(workdir) if workdir else DEFAULT_WORKDIR,
    )


def load_config(config_path: Path) -> GitStatConfig:
    return parse_config(read_config_file(config_path))
