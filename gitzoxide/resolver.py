"""
Resolve a short user query to a tracked repository.

Matching strategies are tried in a fixed order and the first hit wins:

1. exact      ``(remote, name)`` equality
2. browse     query ends with ``/``: pick interactively among the names
              under that prefix
3. base       query without ``/``: substring of a record's base name
4. group      ``group/base`` query: equal group, substring of base

Nothing here mutates the records. Because the database keeps records in
frecency order, "first match" in tiers 3 and 4 means "most relevant match".
"""

import logging
from dataclasses import dataclass
from typing import Container, Mapping, Optional, Sequence

from .errors import ConfigError, NoCandidates, RepoNotFound, ResolutionFailed, SelectorError
from .selector import Selector
from .types import NAME_SEPARATOR, RepoRecord, split_name

logger = logging.getLogger(__name__)

TIER_DEFAULT = "default"
TIER_EXACT = "exact"
TIER_BROWSE = "browse"
TIER_MATCH = "match"


@dataclass
class Resolution:
    """Outcome of a successful resolve."""
    repo: RepoRecord
    tier: str
    # Free-text query the user typed, when it was neither a remote nor a
    # static alias. Used to seed the keyword cache.
    keyword: Optional[str] = None

    @property
    def should_remember(self) -> bool:
        return self.keyword is not None and self.keyword != self.repo.base


# -----------------------------------------------------------------------------
# Tiers
# -----------------------------------------------------------------------------

def find_exact(repos: Sequence[RepoRecord], remote: str, name: str) -> Optional[RepoRecord]:
    for repo in repos:
        if repo.remote == remote and repo.name == name:
            return repo
    return None


def browse_candidates(
    repos: Sequence[RepoRecord],
    remote: str,
    prefix: str,
) -> tuple[list[RepoRecord], list[str]]:
    """Records under ``remote`` whose name extends ``prefix``, with their suffixes.

    ``prefix`` is a group path without the trailing separator; an empty
    prefix selects every record of the remote.
    """
    lead = f"{prefix}{NAME_SEPARATOR}" if prefix else ""
    items: list[RepoRecord] = []
    keys: list[str] = []
    for repo in repos:
        if repo.remote != remote or not repo.name.startswith(lead):
            continue
        key = repo.name[len(lead):].strip(NAME_SEPARATOR)
        if not key:
            continue
        items.append(repo)
        keys.append(key)
    return items, keys


def browse(
    repos: Sequence[RepoRecord],
    remote: str,
    prefix: str,
    selector: Optional[Selector],
) -> RepoRecord:
    """
    Let the user pick a repository under ``remote`` / ``prefix``.

    Raises:
        NoCandidates: nothing lives under the prefix
        SelectionCancelled, NoSelection, SelectorError: from the selector
    """
    items, keys = browse_candidates(repos, remote, prefix)
    if not items:
        raise NoCandidates(prefix or remote)
    if selector is None:
        raise SelectorError("no interactive selector available")
    idx = selector.select(keys)
    if not 0 <= idx < len(items):
        raise SelectorError(f"selector returned invalid index {idx}")
    return items[idx]


def find_match(repos: Sequence[RepoRecord], remote: str, query: str) -> Optional[RepoRecord]:
    """First record whose name matches ``query`` (tiers 3 and 4).

    Without a separator the query is a substring of the base name. With
    one, the group must match exactly and the base is a substring. An
    empty ``remote`` searches every remote.
    """
    group, base = split_name(query)
    for repo in repos:
        if remote and repo.remote != remote:
            continue
        repo_group, repo_base = split_name(repo.name)
        if group and repo_group != group:
            continue
        if base in repo_base:
            return repo
    return None


def find_default(repos: Sequence[RepoRecord]) -> Optional[RepoRecord]:
    """The most recently accessed record; earliest in order on ties."""
    if not repos:
        return None
    return max(repos, key=lambda repo: repo.last_accessed)


# -----------------------------------------------------------------------------
# Entry point
# -----------------------------------------------------------------------------

def resolve(
    repos: Sequence[RepoRecord],
    args: Sequence[str],
    *,
    remotes: Container[str],
    selector: Optional[Selector] = None,
    keyword_map: Optional[Mapping[str, str]] = None,
    create: bool = False,
) -> Resolution:
    """
    Resolve zero, one or two positional arguments to a repository.

    Args:
        repos: Records in ranking order
        args: ``[]``, ``[query]``, ``[remote]`` or ``[remote, name]``
        remotes: Names of the configured remotes
        selector: Used by the browse tier
        keyword_map: Static aliases from the config, applied to single queries
        create: Skip fuzzy matching for ``[remote, name]`` so an unknown
            name falls through to creation

    Raises:
        ResolutionFailed: no tier matched
        NoCandidates: a browse query had nothing under its prefix
        RepoNotFound: no arguments and the database is empty
        ConfigError: ``remote`` is not configured
    """
    if len(args) > 2:
        raise ValueError(f"expected at most 2 arguments, got {len(args)}")

    if not args:
        repo = find_default(repos)
        if repo is None:
            raise RepoNotFound("there is no repo in the database, please consider creating one")
        return Resolution(repo, TIER_DEFAULT)

    if len(args) == 1:
        arg = args[0]
        if arg in remotes:
            return Resolution(browse(repos, arg, "", selector), TIER_BROWSE)

        keyword_map = keyword_map or {}
        query = keyword_map.get(arg, arg)
        repo = find_match(repos, "", query)
        if repo is None:
            raise ResolutionFailed(query)
        keyword = None if arg in keyword_map else arg
        logger.debug("Matched %r to %s", query, repo)
        return Resolution(repo, TIER_MATCH, keyword=keyword)

    remote, name = args
    if remote not in remotes:
        raise ConfigError(f"could not find remote {remote}")

    if name.endswith(NAME_SEPARATOR):
        prefix = name.rstrip(NAME_SEPARATOR)
        return Resolution(browse(repos, remote, prefix, selector), TIER_BROWSE)

    repo = find_exact(repos, remote, name)
    if repo is not None:
        return Resolution(repo, TIER_EXACT)

    if not create:
        repo = find_match(repos, remote, name)
        if repo is not None:
            logger.debug("Matched %r to %s", name, repo)
            return Resolution(repo, TIER_MATCH)

    raise ResolutionFailed(name, remote=remote)
