from __future__ import annotations


class GitStatError(Exception):
    pass


class ConfigError(GitStatError):
    pass


class RepoAccessError(GitStatError):
    """Clone, open or fetch of a configured repository failed."""

    def __init__(self, repo: str, message: str) -> None:
        super().__init__(f"{repo}: {message}")
        self.repo = repo


class WalkError(GitStatError):
    """Checkout, history walk or diff of one repository branch failed."""

    def __init__(self, repo: str, branch: str, message: str) -> None:
        super().__init__(f"{repo}/{branch}: {message}")
        self.repo = repo
        self.branch = branch


class DateParseError(GitStatError, ValueError):
    pass
