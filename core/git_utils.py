"""Git repository detection."""

from pathlib import Path
from typing import Union


def is_git_repository(directory: Union[str, Path]) -> bool:
    """Return True if `directory` or any of its parents contains a `.git` entry.

    `.git` may be a directory or a file (worktrees, submodules).
    """
    try:
        current = Path(directory).resolve()
    except OSError:
        return False
    for candidate in (current, *current.parents):
        if (candidate / ".git").exists():
            return True
    return False
