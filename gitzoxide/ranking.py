"""
Frecency ranking for repository records.

A record's score is its cumulative usage weight multiplied by a step
function of the time since it was last accessed. Recent access boosts a
record; records untouched for a week keep a quarter of their weight.
"""

from .types import DAY, HOUR, WEEK, Epoch, RepoRecord

# (upper bound in seconds, multiplier), checked in order
DECAY_BUCKETS: tuple[tuple[Epoch, float], ...] = (
    (HOUR, 4.0),
    (DAY, 2.0),
    (WEEK, 0.5),
)
STALE_MULTIPLIER = 0.25


def decay(elapsed: Epoch) -> float:
    """Multiplier for a record last accessed ``elapsed`` seconds ago.

    Bounds are exclusive: exactly one hour falls into the one-day bucket.
    """
    for bound, multiplier in DECAY_BUCKETS:
        if elapsed < bound:
            return multiplier
    return STALE_MULTIPLIER


def score(record: RepoRecord, now: Epoch) -> float:
    # A timestamp in the future (clock skew) counts as just accessed
    elapsed = max(0, now - record.last_accessed)
    return record.accessed * decay(elapsed)


def rank(records: list[RepoRecord], now: Epoch) -> None:
    """Sort records in place, highest score first.

    The sort is stable, so records with equal scores keep their previous
    relative order.
    """
    records.sort(key=lambda record: score(record, now), reverse=True)


def touch(record: RepoRecord, now: Epoch) -> None:
    """Record one successful use of ``record``."""
    record.accessed += 1.0
    record.last_accessed = now
