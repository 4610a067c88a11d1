"""
Shared pytest fixtures for git-zoxide tests.

Provides a scripted selector so nothing spawns fzf during testing.
"""

from pathlib import Path
from typing import Optional, Sequence

import pytest
import tomli_w

from gitzoxide.types import RepoRecord


class FakeSelector:
    """
    Scripted stand-in for the interactive selector.

    Records every candidate list it is shown and either returns a fixed
    index or raises a preset error.
    """

    def __init__(self, choice: int = 0, error: Optional[Exception] = None):
        self.choice = choice
        self.error = error
        self.calls: list[list[str]] = []

    def select(self, keys: Sequence[str]) -> int:
        self.calls.append(list(keys))
        if self.error is not None:
            raise self.error
        return self.choice


@pytest.fixture
def selector() -> FakeSelector:
    return FakeSelector()


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Data directory that does not exist yet."""
    return tmp_path / "data"


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    path = tmp_path / "workspace"
    path.mkdir()
    return path


@pytest.fixture
def config_path(tmp_path: Path, workspace: Path) -> Path:
    """Config with remotes ``gh`` and ``other`` rooted at the test workspace."""
    path = tmp_path / "config.toml"
    with open(path, "wb") as f:
        tomli_w.dump({
            "workspace": str(workspace),
            "keyword_map": {"k": "org/b"},
            "remotes": [{"name": "gh"}, {"name": "other"}],
        }, f)
    return path


@pytest.fixture
def sample_repos() -> list[RepoRecord]:
    """Two remotes sharing a repository name."""
    return [
        RepoRecord(remote="gh", name="org/a"),
        RepoRecord(remote="gh", name="org/b"),
        RepoRecord(remote="other", name="org/a"),
    ]
