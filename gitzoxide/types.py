"""
Data types for the repository index.
"""

import time
from dataclasses import dataclass
from pathlib import Path


# Epoch seconds; all timestamps in the index are integers in UTC.
Epoch = int

SECOND: Epoch = 1
MINUTE: Epoch = 60 * SECOND
HOUR: Epoch = 60 * MINUTE
DAY: Epoch = 24 * HOUR
WEEK: Epoch = 7 * DAY

NAME_SEPARATOR = "/"


def current_time() -> Epoch:
    """Current wall-clock time in whole epoch seconds."""
    return int(time.time())


def split_name(name: str) -> tuple[str, str]:
    """Split a repository name into (group, base) at the last separator.

    >>> split_name("org/team/repo")
    ('org/team', 'repo')
    >>> split_name("repo")
    ('', 'repo')
    """
    group, _, base = name.rpartition(NAME_SEPARATOR)
    return group, base


@dataclass
class RepoRecord:
    """
    A tracked repository.

    ``(remote, name)`` identifies the record. ``path`` is an optional
    absolute override; when empty the location is derived from the
    workspace root.
    """
    remote: str
    name: str
    path: str = ""
    last_accessed: Epoch = 0
    accessed: float = 0.0

    @property
    def group(self) -> str:
        return split_name(self.name)[0]

    @property
    def base(self) -> str:
        return split_name(self.name)[1]

    def resolve_path(self, workspace: str | Path) -> Path:
        """Filesystem location of the repository."""
        if self.path:
            return Path(self.path)
        return Path(workspace) / self.remote / self.name

    def __str__(self) -> str:
        return f"{self.remote}:{self.name}"
