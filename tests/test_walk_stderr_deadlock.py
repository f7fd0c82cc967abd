from __future__ import annotations

import multiprocessing as mp
import os
from pathlib import Path

from git_stat.models import RepoHandle, RepoSpec
from git_stat.walk import walk_branch


def _walk_in_subprocess(
    queue: "mp.Queue[object]",
    *,
    repo_dir: str,
    fake_git_dir: str,
) -> None:
    os.environ["PATH"] = str(fake_git_dir) + os.pathsep + os.environ.get("PATH", "")

    spec = RepoSpec(url="https://example.invalid/org/fake.git", name="fake", branches=("main",))
    handle = RepoHandle(name="fake", path=Path(repo_dir), spec=spec)
    records = walk_branch(handle, "main")
    queue.put([(r.commit_id, r.insertions) for r in records])


def test_walk_branch_does_not_deadlock_on_stderr(tmp_path: Path) -> None:
    repo_dir = tmp_path / "repo"
    repo_dir.mkdir()

    fake_git_dir = tmp_path / "bin"
    fake_git_dir.mkdir()
    fake_git = fake_git_dir / "git"
    fake_git.write_text(
        "\n".join(
            [
                "#!/usr/bin/env python3",
                "import sys",
                "",
                "def main() -> int:",
                "    args = sys.argv[1:]",
                "    if 'rev-parse' in args:",
                "        sys.stdout.write('a' * 40 + '\\n')",
                "        return 0",
                "    if 'checkout' in args:",
                "        return 0",
                "    if 'log' in args:",
                "        sys.stdout.write('\\x1ea\\x1f\\x1fAlice\\x1f1735725600\\x1fsub\\x1d\\n\\n')",
                "        sys.stdout.write('1\\t0\\tfile.py\\n')",
                "        sys.stdout.flush()",
                "        sys.stderr.write('E' * (2 * 1024 * 1024))",
                "        sys.stderr.flush()",
                "        sys.stdout.write('\\x1eb\\x1fa\\x1fBob\\x1f1735811999\\x1fsub2\\x1d\\n\\n')",
                "        sys.stdout.write('2\\t0\\tfile2.py\\n')",
                "        sys.stdout.flush()",
                "        return 0",
                "    sys.stderr.write('unexpected args: ' + ' '.join(sys.argv) + '\\n')",
                "    return 2",
                "",
                "if __name__ == '__main__':",
                "    raise SystemExit(main())",
            ]
        )
        + "\n",
        encoding="utf-8",
    )
    fake_git.chmod(0o755)

    queue: mp.Queue[object] = mp.Queue()
    proc = mp.Process(
        target=_walk_in_subprocess,
        args=(queue,),
        kwargs={"repo_dir": str(repo_dir), "fake_git_dir": str(fake_git_dir)},
    )
    proc.start()
    proc.join(timeout=10)
    if proc.is_alive():
        proc.terminate()
        proc.join(timeout=3)
        raise AssertionError("walk_branch hung when git produced large stderr output")

    assert proc.exitcode == 0
    assert queue.get(timeout=3) == [("a", 1), ("b", 2)]
