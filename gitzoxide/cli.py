"""
CLI interface for git-zoxide.

Usage:
    git-zoxide home github org/repo
    git-zoxide home github org/
    git-zoxide jump repo
    git-zoxide attach github org/repo --dir .

Paths for the shell wrapper go to stdout; everything else goes to stderr.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from .config import Config, get_config_path, get_data_dir, load_config, save_default_config
from .database import Database
from .errors import GitZoxideError, IoFailure, RepoExists, RepoNotFound, ResolutionFailed, SilentExit
from .keywords import KeywordCache
from .logging_config import (
    LOGGER_NAME,
    OPS_LOG_FILENAME,
    configure_ops_log,
    configure_quiet_mode,
    enable_debug_mode,
)
from .resolver import Resolution, resolve
from .selector import FzfSelector, Selector
from .shell import DEFAULT_CMD, DEFAULT_HOME_CMD, DEFAULT_JUMP_CMD, render_init
from .types import RepoRecord, current_time

logger = logging.getLogger(__name__)

# Exit code when the user declines a confirmation prompt
DECLINED_EXIT_CODE = 60


# Configure quiet mode by default
# Set GZ_VERBOSE=1 to enable debug mode via environment
if os.environ.get("GZ_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        typer.echo(f"git-zoxide {version('git-zoxide')}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_data_dir_override: Optional[Path] = None
_config_override: Optional[Path] = None
_ops_log_handler: Optional[logging.Handler] = None


def _data_dir_callback(value: Optional[Path]):
    global _data_dir_override
    _data_dir_override = value


def _config_callback(value: Optional[Path]):
    global _config_override
    _config_override = value


app = typer.Typer(
    name="git-zoxide",
    help="Jump between git repositories, ranked by how often and how recently you use them.",
    no_args_is_help=True,
    rich_markup_mode=None,
)


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
    data_dir: Annotated[Optional[Path], typer.Option(
        "--data-dir",
        envvar="GZ_DATA_PATH",
        help="Directory holding the database (default: ~/.local/share/git-zoxide)",
        callback=_data_dir_callback,
        is_eager=True,
    )] = None,
    config: Annotated[Optional[Path], typer.Option(
        "--config",
        envvar="GZ_CONFIG_PATH",
        help="Path to the config file (default: ~/.config/git-zoxide/config.toml)",
        callback=_config_callback,
        is_eager=True,
    )] = None,
):
    """Jump between git repositories, ranked by frecency."""


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

def _get_data_dir() -> Path:
    return _data_dir_override or get_data_dir()


def _get_config() -> Config:
    return load_config(_config_override or get_config_path())


def _get_selector() -> Selector:
    return FzfSelector()


def _enable_ops_log(data_dir: Path) -> None:
    """Attach the operations log for ``data_dir``, replacing any previous one."""
    global _ops_log_handler
    log_path = str(data_dir / OPS_LOG_FILENAME)
    if _ops_log_handler is not None:
        if getattr(_ops_log_handler, "baseFilename", None) == os.path.abspath(log_path):
            return
        logging.getLogger(LOGGER_NAME).removeHandler(_ops_log_handler)
        _ops_log_handler.close()
    _ops_log_handler = configure_ops_log(data_dir)


def _open_database() -> Database:
    data_dir = _get_data_dir()
    db = Database.open(data_dir)
    _enable_ops_log(data_dir)
    return db


def _confirm(message: str) -> None:
    """Ask on stderr; declining exits silently."""
    if not typer.confirm(message, err=True):
        raise SilentExit(DECLINED_EXIT_CODE)


def _resolve_dir(dir: Optional[Path]) -> Path:
    path = dir if dir is not None else Path.cwd()
    try:
        return path.resolve(strict=True)
    except OSError as e:
        typer.echo(f"Error: could not get absolute path for {path}: {e}", err=True)
        raise typer.Exit(1)


def _ensure_repo_dir(repo: RepoRecord, workspace: str) -> Path:
    path = repo.resolve_path(workspace)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise IoFailure(f"could not create repository directory ({e.strerror})", path) from e
    return path


def _remember_keyword(resolution: Resolution, now: int) -> None:
    if not resolution.should_remember:
        return
    keywords = KeywordCache.open(_get_data_dir(), now)
    keywords.add(resolution.keyword, now)
    keywords.save()


# -----------------------------------------------------------------------------
# Navigation
# -----------------------------------------------------------------------------

@app.command()
def home(
    args: Annotated[Optional[list[str]], typer.Argument(
        help="[REMOTE] [NAME]: a remote, a query, or a remote and a name (end with / to browse)",
        show_default=False,
    )] = None,
    create: Annotated[bool, typer.Option(
        "--create", "-c",
        help="Create the repository instead of fuzzy matching NAME",
    )] = False,
):
    """Print the path of a repository and record the visit."""
    args = args or []
    if len(args) > 2:
        typer.echo("Error: expected at most 2 arguments: [REMOTE] [NAME]", err=True)
        raise typer.Exit(1)

    cfg = _get_config()
    db = _open_database()
    now = current_time()

    resolution = None
    try:
        resolution = resolve(
            db.repos,
            args,
            remotes=cfg.remote_names,
            selector=_get_selector(),
            keyword_map=cfg.keyword_map,
            create=create,
        )
        repo = resolution.repo
        logger.debug("Resolved %s via %s", repo, resolution.tier)
    except ResolutionFailed as e:
        if not e.remote:
            raise
        _confirm(f"do you want to create {e.query}")
        repo = db.add(e.remote, e.query)

    path = _ensure_repo_dir(repo, cfg.workspace)
    if resolution is not None:
        _remember_keyword(resolution, now)
    db.update(repo, now)

    typer.echo(str(path))

    db.sort(now)
    db.save()


@app.command()
def jump(
    keyword: Annotated[str, typer.Argument(help="Part of a repository name")],
):
    """Quick jump to the best matching repository across all remotes."""
    cfg = _get_config()
    db = _open_database()
    now = current_time()

    # Remote names are not special here, every word is a query
    resolution = resolve(db.repos, [keyword], remotes=(), keyword_map=cfg.keyword_map)
    repo = resolution.repo

    path = _ensure_repo_dir(repo, cfg.workspace)
    _remember_keyword(resolution, now)
    db.update(repo, now)

    typer.echo(str(path))

    db.sort(now)
    db.save()


# -----------------------------------------------------------------------------
# Index maintenance
# -----------------------------------------------------------------------------

@app.command()
def attach(
    remote: Annotated[str, typer.Argument(help="Configured remote name")],
    name: Annotated[str, typer.Argument(help="Repository name, e.g. group/base")],
    dir: Annotated[Optional[Path], typer.Option(
        "--dir", "-d",
        help="Directory to attach (default: current directory)",
    )] = None,
):
    """Bind an existing directory to a repository."""
    cfg = _get_config()
    cfg.must_get_remote(remote)
    db = _open_database()
    path = _resolve_dir(dir)

    if db.get(remote, name) is not None:
        raise RepoExists(f"repository {remote}:{name} is already exists")
    if db.get_by_path(path) is not None:
        raise RepoExists(
            f"path {path} has already bound to another repository, please consider detach first"
        )

    db.add(remote, name, str(path))
    db.save()
    typer.echo(f"{path} attached", err=True)


@app.command()
def detach(
    dir: Annotated[Optional[Path], typer.Option(
        "--dir", "-d",
        help="Directory to detach (default: current directory)",
    )] = None,
):
    """Forget the repository bound to a directory. Files are kept."""
    db = _open_database()
    path = _resolve_dir(dir)

    repo = db.get_by_path(path)
    if repo is None:
        raise RepoNotFound(f"path {path} did not bound to any repository")

    db.remove(repo)
    db.save()
    typer.echo(f"{path} detached", err=True)


@app.command()
def remove(
    remote: Annotated[str, typer.Argument(help="Remote name")],
    name: Annotated[str, typer.Argument(help="Repository name")],
    force: Annotated[bool, typer.Option(
        "--force", "-f",
        help="Delete the directory without asking",
    )] = False,
):
    """Remove a repository from the index and delete its directory."""
    cfg = _get_config()
    db = _open_database()
    repo = db.must_get(remote, name)

    path = repo.resolve_path(cfg.workspace)
    if path.is_dir():
        if not force and not typer.confirm(f"do you want to remove {path}", err=True):
            return
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise IoFailure(f"could not remove repository directory ({e.strerror})", path) from e

    db.remove(repo)
    db.save()


@app.command("list")
def list_cmd(
    remote: Annotated[Optional[str], typer.Argument(help="List repositories of this remote")] = None,
    group: Annotated[bool, typer.Option(
        "--group",
        help="List groups of the remote instead of repositories",
    )] = False,
    keyword: Annotated[bool, typer.Option(
        "--keyword",
        help="List recently used free-text queries",
    )] = False,
):
    """List remotes, repositories, groups or keywords (used by shell completion)."""
    if keyword:
        keywords = KeywordCache.open(_get_data_dir(), current_time())
        for kw in keywords.list():
            typer.echo(kw)
        keywords.save()
        return

    cfg = _get_config()
    if remote is None:
        for name in cfg.remote_names:
            typer.echo(name)
        return

    cfg.must_get_remote(remote)
    db = Database.open(_get_data_dir())
    if group:
        for g in db.groups(remote):
            typer.echo(f"{g}/")
        return
    for repo in db.by_remote(remote):
        typer.echo(repo.name)


# -----------------------------------------------------------------------------
# Setup
# -----------------------------------------------------------------------------

@app.command()
def init(
    cmd: Annotated[str, typer.Option("--cmd", help="Name of the wrapper function")] = DEFAULT_CMD,
    home_cmd: Annotated[str, typer.Option("--home-cmd", help="Alias for `home`")] = DEFAULT_HOME_CMD,
    jump_cmd: Annotated[str, typer.Option("--jump-cmd", help="Alias for `jump`")] = DEFAULT_JUMP_CMD,
):
    """Print the zsh integration; add `source <(git-zoxide init)` to your profile."""
    typer.echo(render_init(cmd, home_cmd, jump_cmd))


@app.command()
def config():
    """Create the config file if missing and print its path."""
    path = save_default_config(_config_override or get_config_path())
    typer.echo(str(path))


# -----------------------------------------------------------------------------

def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except SilentExit as e:
        raise SystemExit(e.code)
    except GitZoxideError as e:
        typer.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    except Exception as e:
        # Log full traceback to file, show clean message to user
        from .errors import log_exception
        log_path = log_exception(e, context="git-zoxide CLI", data_dir=_get_data_dir())
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
