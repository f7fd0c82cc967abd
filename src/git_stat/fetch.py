from __future__ import annotations

import logging
from pathlib import Path

from .errors import RepoAccessError
from .git import get_repo_toplevel, run_git
from .models import RepoHandle, RepoSpec

logger = logging.getLogger(__name__)


def repo_workdir(spec: RepoSpec, workdir: Path) -> Path:
    return workdir.resolve() / spec.name


def clone_repo(spec: RepoSpec, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    # no timeout: a large first clone may legitimately take a long time
    code, _, err = run_git(
        ["clone", spec.url, str(path)],
        cwd=path.parent,
        timeout_s=None,
        credentials=spec.credentials,
    )
    if code != 0:
        raise RepoAccessError(spec.name, f"git clone {spec.url} failed: {err.strip()[:500]}")


def open_repo(spec: RepoSpec, path: Path) -> None:
    if not path.is_dir():
        raise RepoAccessError(spec.name, f"{path} exists but is not a directory")
    top = get_repo_toplevel(path)
    if top is None or top != path.resolve():
        raise RepoAccessError(spec.name, f"{path} is not the top level of a git work tree")


def fetch_branches(spec: RepoSpec, path: Path) -> None:
    refspecs = [f"+refs/heads/{b}:refs/remotes/origin/{b}" for b in spec.branches]
    code, _, err = run_git(
        ["fetch", "origin", *refspecs],
        cwd=path,
        timeout_s=None,
        credentials=spec.credentials,
    )
    if code != 0:
        raise RepoAccessError(spec.name, f"git fetch failed: {err.strip()[:500]}")


def ensure_repo(spec: RepoSpec, workdir: Path, force_update: bool = False) -> RepoHandle:
    """
    Return a handle on the local copy of `spec`, cloning it on first use.

    Without `force_update` an existing copy is used exactly as it is on disk;
    with it, every configured branch is fetched into its remote tracking ref
    before the handle is returned.
    """
    path = repo_workdir(spec, workdir)
    if not path.exists():
        logger.info("cloning %s into %s", spec.url, path)
        clone_repo(spec, path)
    else:
        open_repo(spec, path)
        logger.info("opened existing repository %s", path)
        if force_update:
            logger.info("fetching %s (%s)", spec.name, ", ".join(spec.branches))
            fetch_branches(spec, path)
    return RepoHandle(name=spec.name, path=path, spec=spec)
