"""
git-zoxide

A frecency-ranked index of local git repositories. Type a remote and part of
a name, land in the repository.

Quick Start:
    from gitzoxide import Database, resolve, current_time

    db = Database.open(data_dir)
    now = current_time()
    resolution = resolve(db.repos, ["github", "zox"], remotes={"github"})
    db.update(resolution.repo, now)
    db.sort(now)
    db.save()

CLI Usage:
    git-zoxide home github org/repo
    git-zoxide jump repo
    git-zoxide list github

Environment Variables:
    GZ_DATA_PATH    - Override the data directory (database, keywords, logs)
    GZ_CONFIG_PATH  - Override the config file location
    GZ_VERBOSE      - Set to 1 for debug logging on stderr
"""

from .database import Database
from .errors import (
    CorruptData,
    GitZoxideError,
    IoFailure,
    ResolutionFailed,
    SelectionCancelled,
    UnsupportedVersion,
)
from .keywords import KeywordCache
from .resolver import Resolution, resolve
from .types import RepoRecord, current_time

__version__ = "0.1.0"
__all__ = [
    "Database",
    "KeywordCache",
    "RepoRecord",
    "Resolution",
    "resolve",
    "current_time",
    "GitZoxideError",
    "CorruptData",
    "UnsupportedVersion",
    "IoFailure",
    "ResolutionFailed",
    "SelectionCancelled",
]
