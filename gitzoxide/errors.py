"""
Exceptions and error logging for git-zoxide.

Logs full stack traces for debugging while showing clean messages to users.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


class GitZoxideError(Exception):
    """Base exception for all git-zoxide errors."""


class ConfigError(GitZoxideError):
    """Raised when the configuration is invalid or cannot be read."""


# -----------------------------------------------------------------------------
# Storage
# -----------------------------------------------------------------------------

class StoreError(GitZoxideError):
    """A persisted file could not be read, decoded or written."""

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        if path is not None:
            message = f"{message}: {path}"
        super().__init__(message)


class CorruptData(StoreError):
    """Truncated or unparseable file contents."""


class UnsupportedVersion(StoreError):
    """The file was written with a format version this build cannot read."""

    def __init__(self, version: int, supported: int, path: Optional[Path] = None):
        self.version = version
        self.supported = supported
        super().__init__(f"unsupported version {version}, supports: {supported}", path)


class IoFailure(StoreError):
    """An OS-level error while creating, reading or replacing a file."""


class RepoNotFound(GitZoxideError):
    """No record exists for the requested remote/name or path."""


class RepoExists(GitZoxideError):
    """A record with the same remote/name (or path) is already tracked."""


# -----------------------------------------------------------------------------
# Resolution and selection
# -----------------------------------------------------------------------------

class ResolutionFailed(GitZoxideError):
    """No matching tier found a repository for the query.

    Recoverable: callers usually offer to create the repository when
    ``remote`` is known.
    """

    def __init__(self, query: str, remote: str = ""):
        self.query = query
        self.remote = remote
        super().__init__(f"could not find repository matches {query}")


class NoCandidates(GitZoxideError):
    """A browse query had nothing to choose from."""

    def __init__(self, query: str):
        self.query = query
        super().__init__(f"no matches repository with query {query}")


class SilentExit(GitZoxideError):
    """Early exit that should not be reported as a failure."""

    def __init__(self, code: int):
        self.code = code
        super().__init__("")


class SelectionCancelled(SilentExit):
    """The interactive selector was cancelled by the user."""

    def __init__(self, code: int = 130):
        super().__init__(code)


class NoSelection(GitZoxideError):
    """The interactive selector exited without a match."""


class SelectorError(GitZoxideError):
    """The interactive selector could not be run or failed."""


def _error_log_path(data_dir: Optional[Path] = None) -> Path:
    """Resolve error log path, respecting --data-dir and GZ_DATA_PATH."""
    if data_dir is None:
        from .config import get_data_dir
        data_dir = get_data_dir()
    return Path(data_dir) / "gz-errors.log"


def log_exception(exc: Exception, context: str = "", data_dir: Optional[Path] = None) -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name)
        data_dir: Directory for the log; defaults to the configured data dir

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path(data_dir)
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}]")
            if context:
                f.write(f" {context}")
            f.write("\n")
            f.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    except OSError:
        pass  # Can't write error log, don't crash over it
    return log_path
