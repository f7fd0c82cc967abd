from __future__ import annotations

import dataclasses
import datetime as dt
import logging
import subprocess
import threading
from collections.abc import Iterable, Iterator
from typing import IO

from .errors import WalkError
from .git import git_env, remote_ref, resolve_commit, run_git
from .models import CommitRecord, RepoHandle
from .paths import PathspecRule, normalize_numstat_path, path_selected

logger = logging.getLogger(__name__)

HEADER_START = "\x1e"
FIELD_SEP = "\x1f"
HEADER_END = "\x1d"
LOG_FORMAT = "%x1e%H%x1f%P%x1f%an%x1f%ct%x1f%B%x1d"

MAX_STDERR_CHARS = 50_000


@dataclasses.dataclass(frozen=True)
class FileStat:
    path: str
    insertions: int
    deletions: int


@dataclasses.dataclass
class LogEntry:
    sha: str
    parents: tuple[str, ...]
    author: str
    timestamp: str
    message: str
    files: list[FileStat] = dataclasses.field(default_factory=list)


def _parse_header(text: str) -> LogEntry:
    body = text.split(HEADER_END, 1)[0]
    fields = body.split(FIELD_SEP, 4)
    if len(fields) != 5 or not fields[0]:
        raise ValueError(f"malformed git log header: {body[:120]!r}")
    sha, parents, author, timestamp, message = fields
    return LogEntry(
        sha=sha.strip(),
        parents=tuple(parents.split()),
        author=author,
        timestamp=timestamp.strip(),
        message=message.rstrip("\n"),
    )


def _parse_numstat_line(line: str) -> FileStat | None:
    parts = line.split("\t", 2)
    if len(parts) < 3:
        return None
    added_s, deleted_s, path = parts
    # binary files report "-" and still count as a changed file
    if added_s == "-" or deleted_s == "-":
        return FileStat(path=normalize_numstat_path(path), insertions=0, deletions=0)
    try:
        added = int(added_s)
        deleted = int(deleted_s)
    except ValueError:
        return None
    return FileStat(path=normalize_numstat_path(path), insertions=max(0, added), deletions=max(0, deleted))


def parse_log_stream(lines: Iterable[str]) -> Iterator[LogEntry]:
    """
    Parse `git log --numstat --format=LOG_FORMAT` output.

    Headers are framed by HEADER_START/HEADER_END so multi-line commit messages
    survive line-based reading; everything between two headers is numstat.
    """
    header: list[str] | None = None
    current: LogEntry | None = None
    for raw_line in lines:
        line = raw_line.rstrip("\n")
        if header is None and line.startswith(HEADER_START):
            if current is not None:
                yield current
            current = None
            header = [line[len(HEADER_START) :]]
        elif header is not None:
            header.append(line)
        else:
            if current is None or not line:
                continue
            stat = _parse_numstat_line(line)
            if stat is not None:
                current.files.append(stat)
            continue

        if HEADER_END in header[-1]:
            current = _parse_header("\n".join(header))
            header = None

    if header is not None:
        raise ValueError("git log output ended inside a commit header")
    if current is not None:
        yield current


def commit_local_time(timestamp: str) -> dt.datetime | None:
    try:
        seconds = int(timestamp)
    except ValueError:
        return None
    return dt.datetime.fromtimestamp(seconds, tz=dt.timezone.utc).astimezone()


def checkout_branch(handle: RepoHandle, branch: str) -> str:
    ref = remote_ref(branch)
    sha = resolve_commit(handle.path, ref)
    if not sha:
        raise WalkError(handle.name, branch, f"remote tracking ref {ref} not found")
    # forced: local modifications in the work tree are discarded
    code, _, err = run_git(["checkout", "--force", "--detach", ref], cwd=handle.path)
    if code != 0:
        raise WalkError(handle.name, branch, f"git checkout {ref} failed: {err.strip()[:500]}")
    logger.debug("checked out %s at %s in %s", ref, sha, handle.path)
    return sha


def _drain(stream: IO[str], chunks: list[str]) -> None:
    taken = 0
    while True:
        chunk = stream.read(8192)
        if not chunk:
            return
        if taken >= MAX_STDERR_CHARS:
            continue
        part = chunk[: MAX_STDERR_CHARS - taken]
        chunks.append(part)
        taken += len(part)


def walk_branch(
    handle: RepoHandle,
    branch: str,
    pathspec: tuple[PathspecRule, ...] | list[PathspecRule] = (),
) -> list[CommitRecord]:
    """
    Check out `origin/<branch>` and return one record per retained commit,
    newest commit first.

    Merge commits are skipped, as are commits whose diff against their parent
    (or the empty tree for a root commit) touches no file selected by
    `pathspec`.
    """
    checkout_branch(handle, branch)

    cmd = [
        "git",
        "-c",
        "core.quotePath=false",
        "log",
        "HEAD",
        "--root",
        "--no-renames",
        "--no-color",
        "--numstat",
        f"--format={LOG_FORMAT}",
    ]
    try:
        proc = subprocess.Popen(
            cmd,
            cwd=str(handle.path),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            env=git_env(),
        )
    except OSError as e:
        raise WalkError(handle.name, branch, f"failed to start git log: {e}") from e

    stderr_chunks: list[str] = []
    assert proc.stderr is not None
    stderr_thread = threading.Thread(target=_drain, args=(proc.stderr, stderr_chunks), daemon=True)
    stderr_thread.start()

    records: list[CommitRecord] = []
    skipped_merges = 0
    skipped_outside = 0
    try:
        assert proc.stdout is not None
        for entry in parse_log_stream(proc.stdout):
            if len(entry.parents) > 1:
                skipped_merges += 1
                logger.debug("skip merge commit %s (%d parents)", entry.sha, len(entry.parents))
                continue
            files = [f for f in entry.files if path_selected(f.path, pathspec)]
            if not files:
                skipped_outside += 1
                logger.debug("skip %s: no changed files within pathspec", entry.sha)
                continue
            records.append(
                CommitRecord(
                    repo=handle.name,
                    date=commit_local_time(entry.timestamp),
                    branch=branch,
                    commit_id=entry.sha,
                    author=entry.author,
                    message=entry.message,
                    insertions=sum(f.insertions for f in files),
                    deletions=sum(f.deletions for f in files),
                )
            )
    except ValueError as e:
        proc.kill()
        raise WalkError(handle.name, branch, str(e)) from e
    except BaseException:
        proc.kill()
        raise
    finally:
        code = proc.wait()
        stderr_thread.join()

    if code != 0:
        stderr = "".join(stderr_chunks)
        raise WalkError(handle.name, branch, f"git log exited {code}: {stderr.strip()[:500]}")

    logger.info(
        "walked %s/%s: %d commits kept, %d merges skipped, %d outside pathspec",
        handle.name,
        branch,
        len(records),
        skipped_merges,
        skipped_outside,
    )
    return records
