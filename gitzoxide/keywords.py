"""
Short-lived aliases for free-text queries.

When a query like ``gz zox`` resolves to a repository whose base name is not
``zox``, the query is remembered for a day so shell completion can offer it
again. Expired entries are dropped when the file is loaded.
"""

import logging
from pathlib import Path
from typing import Optional

from .codec import atomic_write, decode_keywords, encode_keywords, ensure_dir, read_or_none
from .types import DAY, Epoch

logger = logging.getLogger(__name__)

KEYWORDS_FILENAME = "keywords"
KEYWORD_TTL: Epoch = DAY


class KeywordCache:
    """Keyword -> expiry epoch map, persisted separately from the database."""

    def __init__(self, path: Path, data: Optional[dict[str, Epoch]] = None):
        self._path = Path(path)
        self.data: dict[str, Epoch] = data if data is not None else {}
        self._dirty = False

    @classmethod
    def open(cls, data_dir: Path, now: Epoch) -> "KeywordCache":
        """Load live keywords from ``data_dir``, dropping those expired before ``now``."""
        path = Path(data_dir) / KEYWORDS_FILENAME
        raw = read_or_none(path)
        if raw is None:
            ensure_dir(path.parent)
            return cls(path)

        data = decode_keywords(raw, path)
        live = {keyword: expiry for keyword, expiry in data.items() if expiry >= now}
        cache = cls(path, live)
        if len(live) != len(data):
            logger.debug("Expired %d keywords", len(data) - len(live))
            cache._dirty = True
        return cache

    @property
    def path(self) -> Path:
        return self._path

    def __contains__(self, keyword: str) -> bool:
        return keyword in self.data

    def __len__(self) -> int:
        return len(self.data)

    def add(self, keyword: str, now: Epoch) -> None:
        """Remember ``keyword`` until one day after ``now``."""
        self.data[keyword] = now + KEYWORD_TTL
        self._dirty = True

    def list(self) -> list[str]:
        return sorted(self.data)

    def save(self) -> bool:
        if not self._dirty:
            return False
        atomic_write(self._path, encode_keywords(self.data))
        self._dirty = False
        return True
