"""
Configuration for git-zoxide.

The configuration is a TOML file describing the workspace root, the
remotes repositories are grouped under, and static keyword aliases.
Both the config file and the data directory can be relocated through
environment variables.
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import tomli_w

from .errors import ConfigError


APP_NAME = "git-zoxide"
CONFIG_FILENAME = "config.toml"
CONFIG_VERSION = 1
DEFAULT_WORKSPACE = "~/dev"

CONFIG_PATH_ENV = "GZ_CONFIG_PATH"
DATA_PATH_ENV = "GZ_DATA_PATH"


@dataclass
class RemoteConfig:
    """A named scope repositories live under."""
    name: str


@dataclass
class Config:
    """Complete configuration."""
    workspace: str = DEFAULT_WORKSPACE
    remotes: list[RemoteConfig] = field(default_factory=list)
    keyword_map: dict[str, str] = field(default_factory=dict)
    version: int = CONFIG_VERSION

    @property
    def remote_names(self) -> list[str]:
        return [remote.name for remote in self.remotes]

    def get_remote(self, name: str) -> Optional[RemoteConfig]:
        for remote in self.remotes:
            if remote.name == name:
                return remote
        return None

    def must_get_remote(self, name: str) -> RemoteConfig:
        remote = self.get_remote(name)
        if remote is None:
            raise ConfigError(f"could not find remote {name}")
        return remote


def get_config_path() -> Path:
    """
    Path to the config file.

    Priority:
    1. GZ_CONFIG_PATH environment variable
    2. $XDG_CONFIG_HOME/git-zoxide/config.toml
    3. ~/.config/git-zoxide/config.toml
    """
    env_path = os.environ.get(CONFIG_PATH_ENV)
    if env_path:
        return Path(env_path).expanduser()
    base = os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config"
    return Path(base) / APP_NAME / CONFIG_FILENAME


def get_data_dir() -> Path:
    """
    Directory holding the database and keyword files.

    Priority:
    1. GZ_DATA_PATH environment variable
    2. $XDG_DATA_HOME/git-zoxide
    3. ~/.local/share/git-zoxide
    """
    env_path = os.environ.get(DATA_PATH_ENV)
    if env_path:
        return Path(env_path).expanduser()
    base = os.environ.get("XDG_DATA_HOME") or Path.home() / ".local" / "share"
    return Path(base) / APP_NAME


def expand_path(value: str) -> str:
    """Expand ``~`` and ``$VARS`` in a config value."""
    return os.path.expanduser(os.path.expandvars(value))


def _parse_remote(section: Any) -> RemoteConfig:
    if not isinstance(section, dict):
        raise ConfigError("remotes must be a list of tables")
    name = section.get("name")
    if not name or not isinstance(name, str):
        raise ConfigError("every remote needs a name")
    return RemoteConfig(name=name)


def parse_config(data: dict[str, Any]) -> Config:
    """
    Build a Config from parsed TOML data and normalize it.

    Raises:
        ConfigError: If the data is invalid
    """
    version = data.get("version", CONFIG_VERSION)
    if not isinstance(version, int) or isinstance(version, bool):
        raise ConfigError("version must be an integer")
    if version > CONFIG_VERSION:
        raise ConfigError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    workspace = data.get("workspace", DEFAULT_WORKSPACE)
    if not isinstance(workspace, str):
        raise ConfigError("workspace must be a string")

    sections = data.get("remotes", [])
    if not isinstance(sections, list):
        raise ConfigError("remotes must be a list of tables")
    remotes = [_parse_remote(section) for section in sections]
    seen: set[str] = set()
    for remote in remotes:
        if remote.name in seen:
            raise ConfigError(f"remote {remote.name} is duplicate in your config")
        seen.add(remote.name)

    keyword_map = data.get("keyword_map", {})
    if not isinstance(keyword_map, dict):
        raise ConfigError("keyword_map must be a table")
    if not all(isinstance(v, str) for v in keyword_map.values()):
        raise ConfigError("keyword_map values must be strings")

    return Config(
        workspace=expand_path(workspace),
        remotes=remotes,
        keyword_map=dict(keyword_map),
        version=version,
    )


def load_config(path: Optional[Path] = None) -> Config:
    """
    Load configuration, falling back to defaults when the file is missing.

    Raises:
        ConfigError: If the file cannot be read or is invalid
    """
    path = path or get_config_path()
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        return parse_config({})
    except OSError as e:
        raise ConfigError(f"could not read config file {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"could not parse config file {path}: {e}") from e
    return parse_config(data)


def default_config_data() -> dict[str, Any]:
    """Starter configuration written by ``gz config``."""
    return {
        "version": CONFIG_VERSION,
        "workspace": DEFAULT_WORKSPACE,
        "keyword_map": {},
        "remotes": [
            {
                "name": "github",
            },
        ],
    }


def save_default_config(path: Optional[Path] = None) -> Path:
    """
    Write the starter configuration unless a config file already exists.

    Creates the directory if it doesn't exist.
    """
    path = path or get_config_path()
    if path.exists():
        return path
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        tomli_w.dump(default_config_data(), f)
    return path
