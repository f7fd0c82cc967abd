from __future__ import annotations

import base64
import os
import subprocess
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from .models import Credentials


def git_env() -> dict[str, str]:
    env = os.environ.copy()
    # never block a worker on an interactive username/password prompt
    env["GIT_TERMINAL_PROMPT"] = "0"
    return env


def credential_config_args(credentials: Credentials | None) -> list[str]:
    """
    Per-invocation `-c` options that authenticate HTTP(S) remotes.

    The header only lives on the command line of a single git call, so the
    secret is never written to the clone's `.git/config`.
    """
    if credentials is None or credentials.is_anonymous:
        return []
    token = base64.b64encode(f"{credentials.username}:{credentials.password}".encode("utf-8")).decode("ascii")
    return ["-c", f"http.extraHeader=Authorization: Basic {token}"]


def run_git(
    args: list[str],
    cwd: Path,
    timeout_s: int | None = 300,
    credentials: Credentials | None = None,
) -> tuple[int, str, str]:
    proc = subprocess.run(
        ["git", *credential_config_args(credentials), *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        timeout=timeout_s,
        env=git_env(),
    )
    return proc.returncode, proc.stdout, proc.stderr


def get_repo_toplevel(candidate: Path) -> Optional[Path]:
    code, out, _ = run_git(["rev-parse", "--show-toplevel"], cwd=candidate)
    if code != 0:
        return None
    try:
        return Path(out.strip()).resolve()
    except OSError:
        return None


def canonicalize_remote(remote: str) -> str:
    r = (remote or "").strip()
    if not r:
        return ""

    if "://" not in r and ":" in r and "@" in r.split(":", 1)[0]:
        left, path = r.split(":", 1)
        host = left.split("@", 1)[1]
        canon = f"{host}/{path}"
    else:
        parsed = urlparse(r)
        if parsed.scheme and parsed.netloc:
            host = parsed.netloc
            if "@" in host:
                host = host.split("@", 1)[1]
            canon = f"{host}/{parsed.path.lstrip('/')}"
        else:
            canon = r

    canon = canon.replace("\\", "/").rstrip("/")
    if canon.endswith(".git"):
        canon = canon[:-4]
    return canon


def repo_name_from_url(url: str) -> str:
    """
    Name of the working directory for a remote:
      https://github.com/org/yogo.git -> yogo
      git@github.com:org/yogo.git     -> yogo
      /srv/mirrors/yogo               -> yogo
    """
    canon = canonicalize_remote(url)
    if not canon:
        return ""
    return canon.rsplit("/", 1)[-1]


def remote_ref(branch: str, remote: str = "origin") -> str:
    return f"refs/remotes/{remote}/{branch}"


def resolve_commit(repo: Path, ref: str) -> str:
    code, out, _ = run_git(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"], cwd=repo)
    if code != 0:
        return ""
    return out.strip()
