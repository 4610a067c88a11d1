"""
Repository index backed by a single binary file.

The database is the source of truth for:
- Which repositories are tracked, keyed by (remote, name)
- Optional path overrides for repositories living outside the workspace
- Usage statistics feeding the frecency ranking

A database is loaded once per command, mutated in memory and written back
at most once. There is no locking: when two processes save concurrently,
the last successful save wins.
"""

import logging
from pathlib import Path
from typing import Iterator, Optional

from . import ranking
from .codec import atomic_write, decode_records, encode_records, ensure_dir, read_or_none
from .errors import RepoExists, RepoNotFound
from .types import Epoch, RepoRecord

logger = logging.getLogger(__name__)

DATABASE_FILENAME = "database"


class Database:
    """
    Ordered collection of repository records bound to one file.

    ``repos`` is kept in ranking order (see ``sort``); lookups that can
    match several records return the first one, so the order doubles as
    the tie-break.
    """

    def __init__(self, path: Path, repos: Optional[list[RepoRecord]] = None):
        """
        Args:
            path: File the database is saved to
            repos: Initial records, in ranking order
        """
        self._path = Path(path)
        self.repos: list[RepoRecord] = repos if repos is not None else []
        self._dirty = False

    @classmethod
    def open(cls, data_dir: Path) -> "Database":
        """
        Load the database from ``data_dir``.

        A missing file is a store that has not been created yet: the data
        directory is created and the database starts empty.

        Raises:
            CorruptData, UnsupportedVersion: the file cannot be decoded
            IoFailure: the file or directory cannot be accessed
        """
        path = Path(data_dir) / DATABASE_FILENAME
        data = read_or_none(path)
        if data is None:
            ensure_dir(path.parent)
            return cls(path)
        return cls(path, decode_records(data, path))

    @property
    def path(self) -> Path:
        return self._path

    @property
    def dirty(self) -> bool:
        """True when there are changes not yet written by ``save``."""
        return self._dirty

    def __len__(self) -> int:
        return len(self.repos)

    def __iter__(self) -> Iterator[RepoRecord]:
        return iter(self.repos)

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def get(self, remote: str, name: str) -> Optional[RepoRecord]:
        for repo in self.repos:
            if repo.remote == remote and repo.name == name:
                return repo
        return None

    def must_get(self, remote: str, name: str) -> RepoRecord:
        repo = self.get(remote, name)
        if repo is None:
            raise RepoNotFound(f"could not find repository {remote}:{name}")
        return repo

    def get_by_path(self, path: str | Path) -> Optional[RepoRecord]:
        """Find the record whose path override equals ``path``.

        Records without an override never match.
        """
        path = str(path)
        for repo in self.repos:
            if repo.path and repo.path == path:
                return repo
        return None

    def current(self, workspace: str | Path, cwd: str | Path) -> RepoRecord:
        """The record whose resolved location is ``cwd``."""
        cwd = Path(cwd)
        for repo in self.repos:
            if repo.resolve_path(workspace) == cwd:
                return repo
        raise RepoNotFound("current path does not bound to any repository")

    def list_paths(self, workspace: str | Path) -> list[Path]:
        return [repo.resolve_path(workspace) for repo in self.repos]

    def by_remote(self, remote: str) -> list[RepoRecord]:
        """Records under ``remote``, in ranking order."""
        return [repo for repo in self.repos if repo.remote == remote]

    def groups(self, remote: str) -> list[str]:
        """Distinct non-empty groups under ``remote``, sorted."""
        return sorted({repo.group for repo in self.by_remote(remote) if repo.group})

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def add(self, remote: str, name: str, path: str = "") -> RepoRecord:
        """
        Track a new repository with zero usage.

        Returns:
            The new record, appended at the end of the ranking

        Raises:
            RepoExists: (remote, name) is already tracked
        """
        if not remote:
            raise ValueError("remote must not be empty")
        if self.get(remote, name) is not None:
            raise RepoExists(f"repository {remote}:{name} is already exists")
        repo = RepoRecord(remote=remote, name=name, path=path)
        self.repos.append(repo)
        self._dirty = True
        logger.info("Added repository %s", repo)
        return repo

    def remove(self, repo: RepoRecord) -> None:
        # Identity, not equality: two records may compare equal field-by-field
        for idx, candidate in enumerate(self.repos):
            if candidate is repo:
                del self.repos[idx]
                self._dirty = True
                logger.info("Removed repository %s", repo)
                return
        raise RepoNotFound(f"could not find repository {repo}")

    def update(self, repo: RepoRecord, now: Epoch) -> None:
        """Count one successful use of ``repo``."""
        ranking.touch(repo, now)
        self._dirty = True

    def sort(self, now: Epoch) -> None:
        """Re-rank records by frecency, most relevant first."""
        before = [id(repo) for repo in self.repos]
        ranking.rank(self.repos, now)
        if [id(repo) for repo in self.repos] != before:
            self._dirty = True

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def save(self) -> bool:
        """
        Write the database if it has unsaved changes.

        The full file is encoded in memory before anything touches disk,
        and replaced atomically.

        Returns:
            True if the file was written
        """
        if not self._dirty:
            return False
        atomic_write(self._path, encode_records(self.repos))
        self._dirty = False
        logger.info("Saved %d repositories to %s", len(self.repos), self._path)
        return True
