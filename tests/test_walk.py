from __future__ import annotations

import datetime as dt
import os
import subprocess
from pathlib import Path

import pytest

from git_stat.errors import WalkError
from git_stat.fetch import ensure_repo
from git_stat.models import RepoHandle, RepoSpec
from git_stat.paths import parse_pathspec
from git_stat.walk import parse_log_stream, walk_branch


def _run(cmd: list[str], *, cwd: Path, env: dict[str, str] | None = None) -> str:
    proc = subprocess.run(cmd, cwd=str(cwd), env=env, check=True, capture_output=True, text=True)
    return proc.stdout


def _env(when: str, author: str = "Test User") -> dict[str, str]:
    env = os.environ.copy()
    env["GIT_AUTHOR_NAME"] = author
    env["GIT_AUTHOR_EMAIL"] = "test@example.com"
    env["GIT_COMMITTER_NAME"] = author
    env["GIT_COMMITTER_EMAIL"] = "test@example.com"
    env["GIT_AUTHOR_DATE"] = when
    env["GIT_COMMITTER_DATE"] = when
    return env


def _init_source(repo: Path) -> None:
    repo.mkdir(parents=True, exist_ok=True)
    _run(["git", "init", "-b", "main"], cwd=repo)
    _run(["git", "config", "commit.gpgsign", "false"], cwd=repo)


def _commit(repo: Path, files: dict[str, str], message: str, when: str, author: str = "Test User") -> str:
    for rel, content in files.items():
        p = repo / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(content, encoding="utf-8")
    _run(["git", "add", "-A"], cwd=repo)
    _run(["git", "commit", "-m", message], cwd=repo, env=_env(when, author))
    return _run(["git", "rev-parse", "HEAD"], cwd=repo).strip()


def _clone(src: Path, workdir: Path, name: str = "yogo") -> RepoHandle:
    return ensure_repo(RepoSpec(url=str(src), name=name, branches=("main",)), workdir)


def test_walk_skips_merge_commits(tmp_path: Path) -> None:
    src = tmp_path / "src"
    _init_source(src)
    c1 = _commit(src, {"a.txt": "1\n2\n"}, "first", "2025-01-01T10:00:00+00:00")
    c2 = _commit(src, {"a.txt": "1\n2\n3\n", "b.txt": "x\n"}, "second\n\nwith a body line", "2025-01-02T10:00:00+00:00")
    tree = _run(["git", "rev-parse", f"{c2}^{{tree}}"], cwd=src).strip()
    c3 = _run(
        ["git", "commit-tree", tree, "-p", c2, "-p", c1, "-m", "merge"],
        cwd=src,
        env=_env("2025-01-03T10:00:00+00:00"),
    ).strip()
    _run(["git", "update-ref", "refs/heads/main", c3], cwd=src)

    handle = _clone(src, tmp_path / "repos")
    records = walk_branch(handle, "main")

    assert [r.commit_id for r in records] == [c2, c1]
    newest, root = records
    assert (newest.repo, newest.branch, newest.author) == ("yogo", "main", "Test User")
    assert newest.message == "second\n\nwith a body line"
    assert (newest.insertions, newest.deletions) == (2, 0)
    assert (root.insertions, root.deletions) == (2, 0)
    assert newest.date == dt.datetime(2025, 1, 2, 10, 0, 0, tzinfo=dt.timezone.utc)
    assert newest.date is not None and newest.date.tzinfo is not None


def test_walk_counts_deletions_and_is_repeatable(tmp_path: Path) -> None:
    src = tmp_path / "src"
    _init_source(src)
    _commit(src, {"a.txt": "1\n2\n3\n4\n"}, "add", "2025-01-01T10:00:00+00:00")
    _commit(src, {"a.txt": "1\nTWO\n"}, "shrink", "2025-01-02T10:00:00+00:00")

    handle = _clone(src, tmp_path / "repos")
    first = walk_branch(handle, "main")
    second = walk_branch(handle, "main")

    assert first == second
    assert [(r.message, r.insertions, r.deletions) for r in first] == [("shrink", 1, 3), ("add", 4, 0)]
    assert all(r.insertions >= 0 and r.deletions >= 0 for r in first)


def test_exclusion_before_inclusion_drops_commit(tmp_path: Path) -> None:
    src = tmp_path / "src"
    _init_source(src)
    _commit(src, {"cmd/main.go": "package main\n"}, "app", "2025-01-01T10:00:00+00:00")
    _commit(src, {"vendor/lib.go": "package lib\nvar X = 1\n"}, "vendored", "2025-01-02T10:00:00+00:00")

    handle = _clone(src, tmp_path / "repos")

    excluded = walk_branch(handle, "main", parse_pathspec(["!vendor", "*.go"]))
    assert [r.message for r in excluded] == ["app"]

    # listed after the inclusion, the exclusion never gets a say
    ignored = walk_branch(handle, "main", parse_pathspec(["*.go", "!vendor"]))
    assert [r.message for r in ignored] == ["vendored", "app"]


def test_exclusion_only_pathspec_drops_every_commit(tmp_path: Path) -> None:
    src = tmp_path / "src"
    _init_source(src)
    _commit(src, {"cmd/main.go": "package main\n"}, "app", "2025-01-01T10:00:00+00:00")
    _commit(src, {"docs/guide.md": "guide\n"}, "docs", "2025-01-02T10:00:00+00:00")

    handle = _clone(src, tmp_path / "repos")

    assert walk_branch(handle, "main", parse_pathspec(["!docs"])) == []


def test_pathspec_restricts_line_counts(tmp_path: Path) -> None:
    src = tmp_path / "src"
    _init_source(src)
    _commit(src, {"main.go": "a\nb\n", "README.md": "x\ny\nz\n"}, "mixed", "2025-01-01T10:00:00+00:00")

    handle = _clone(src, tmp_path / "repos")
    records = walk_branch(handle, "main", parse_pathspec(["*.go"]))

    assert len(records) == 1
    assert records[0].insertions == 2


def test_checkout_discards_local_changes(tmp_path: Path) -> None:
    src = tmp_path / "src"
    _init_source(src)
    _commit(src, {"a.txt": "clean\n"}, "init", "2025-01-01T10:00:00+00:00")

    handle = _clone(src, tmp_path / "repos")
    (handle.path / "a.txt").write_text("dirty\n", encoding="utf-8")

    records = walk_branch(handle, "main")

    assert len(records) == 1
    assert (handle.path / "a.txt").read_text(encoding="utf-8") == "clean\n"


def test_missing_branch_raises_walk_error(tmp_path: Path) -> None:
    src = tmp_path / "src"
    _init_source(src)
    _commit(src, {"a.txt": "a\n"}, "init", "2025-01-01T10:00:00+00:00")

    handle = _clone(src, tmp_path / "repos")
    with pytest.raises(WalkError) as excinfo:
        walk_branch(handle, "no-such-branch")
    assert excinfo.value.repo == "yogo"
    assert excinfo.value.branch == "no-such-branch"


def test_parse_log_stream_multiline_messages_and_binary() -> None:
    lines = [
        "\x1eaaa\x1fppp\x1fAlice\x1f1735725600\x1fsubject\n",
        "\n",
        "body\n",
        "\x1d\n",
        "\n",
        "3\t1\tsrc/a.py\n",
        "-\t-\tlogo.png\n",
        "\x1ebbb\x1f\x1fBob\x1f1735639200\x1froot\n",
        "\x1d\n",
        "\n",
        "2\t0\tREADME.md\n",
    ]
    entries = list(parse_log_stream(lines))

    assert [e.sha for e in entries] == ["aaa", "bbb"]
    first, root = entries
    assert first.parents == ("ppp",)
    assert first.message == "subject\n\nbody"
    assert [(f.path, f.insertions, f.deletions) for f in first.files] == [("src/a.py", 3, 1), ("logo.png", 0, 0)]
    assert root.parents == ()
    assert root.author == "Bob"
    assert [(f.path, f.insertions) for f in root.files] == [("README.md", 2)]


def test_parse_log_stream_rejects_truncated_header() -> None:
    with pytest.raises(ValueError):
        list(parse_log_stream(["\x1eaaa\x1fppp\x1fAlice\x1f1735725600\x1fsubject\n", "more text\n"]))
