"""Git operations used by release tasks.

Usage:
    from firefly.git import Repository

    repo = Repository(Path("."))
    match repo.current_branch():
        case Ok(branch):
            print(branch)
"""

from firefly.git.repository import GitStatus, Repository, StatusEntry, parse_status

__all__ = [
    "GitStatus",
    "Repository",
    "StatusEntry",
    "parse_status",
]
