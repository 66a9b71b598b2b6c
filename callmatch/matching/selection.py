"""Selection policy: reduce zero, one or many matches to a single result.

Ranking tiers (applied in order)
--------------------------------
1. Status not cancelled before cancelled.
2. Upcoming bookings (start >= now), earliest start first.
3. Otherwise most recently updated first, falling back to created time;
   bookings with neither timestamp come last.
4. Original fetch order.

Ranking never uses randomness, so the same input always yields the same
result.  With auto-resolution off, several matches are surfaced as
:class:`Ambiguous` with at most :data:`AMBIGUOUS_CAP` candidates, ordered by
the same ranking.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Union

from callmatch.matching.extractor import RecordValue
from callmatch.matching.matcher import MatchCandidate

logger = logging.getLogger(__name__)

AMBIGUOUS_CAP = 5

CANCELLED_STATUSES = frozenset({"cancelled", "canceled"})

_START_KEYS = ("start", "startTime", "start_time")
_UPDATED_KEYS = ("updatedAt", "updated_at", "updated")
_CREATED_KEYS = ("createdAt", "created_at", "created")


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Found:
    record: RecordValue


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class Ambiguous:
    candidates: tuple[RecordValue, ...]


SelectionResult = Union[Found, NotFound, Ambiguous]


# ---------------------------------------------------------------------------
# Booking facts
# ---------------------------------------------------------------------------

def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 string or epoch number into an aware UTC datetime.

    Epoch numbers above ``1e11`` are treated as milliseconds.  Returns
    ``None`` for anything unparseable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e11 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _first(record: RecordValue, keys: Sequence[str]) -> Any:
    if not isinstance(record, dict):
        return None
    for key in keys:
        if record.get(key) is not None:
            return record[key]
    return None


def booking_status(record: RecordValue) -> str | None:
    status = _first(record, ("status",))
    return str(status).strip().lower() if status is not None else None


def is_cancelled(record: RecordValue) -> bool:
    return booking_status(record) in CANCELLED_STATUSES


def booking_start(record: RecordValue) -> datetime | None:
    return parse_timestamp(_first(record, _START_KEYS))


def booking_touched(record: RecordValue) -> datetime | None:
    """Last-updated timestamp, falling back to creation time."""
    return parse_timestamp(_first(record, _UPDATED_KEYS)) or parse_timestamp(_first(record, _CREATED_KEYS))


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------

def _rank_key(candidate: MatchCandidate, now: datetime) -> tuple:
    record = candidate.record
    start = booking_start(record)
    upcoming = start is not None and start >= now
    touched = booking_touched(record)
    return (
        1 if is_cancelled(record) else 0,
        0 if upcoming else 1,
        start.timestamp() if upcoming else 0.0,
        0 if touched is not None else 1,
        -touched.timestamp() if touched is not None else 0.0,
        candidate.index,
    )


def rank_candidates(candidates: Sequence[MatchCandidate], now: datetime | None = None) -> list[MatchCandidate]:
    """Return *candidates* ordered best-first by the ranking tiers."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return sorted(candidates, key=lambda c: _rank_key(c, now))


def select_booking(
    candidates: Sequence[MatchCandidate],
    *,
    auto_resolve: bool,
    now: datetime | None = None,
) -> SelectionResult:
    """Reduce matching *candidates* to a :data:`SelectionResult`."""
    if not candidates:
        return NotFound()
    if len(candidates) == 1:
        return Found(candidates[0].record)

    ranked = rank_candidates(candidates, now)
    if auto_resolve:
        logger.info("selection: auto-resolved %d matches (picked index=%d)", len(candidates), ranked[0].index)
        return Found(ranked[0].record)

    logger.info("selection: %d matches left ambiguous", len(candidates))
    return Ambiguous(tuple(c.record for c in ranked[:AMBIGUOUS_CAP]))
