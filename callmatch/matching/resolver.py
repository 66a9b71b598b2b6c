"""Core entry points: match a normalized caller against fetched records.

The decision trace is returned as a :class:`MatchReport` rather than
written to a log, so callers can surface or record it as they see fit.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from callmatch.matching.extractor import RecordValue
from callmatch.matching.identity import NormalizedIdentity
from callmatch.matching.matcher import MatchCandidate, filter_matches
from callmatch.matching.selection import Found, SelectionResult, select_booking


@dataclass(frozen=True)
class MatchReport:
    result: SelectionResult
    records_scanned: int
    matches: tuple[MatchCandidate, ...]
    auto_resolved: bool = False


def match_and_report(
    identity: NormalizedIdentity,
    records: Sequence[RecordValue],
    *,
    auto_resolve: bool,
    now: datetime | None = None,
) -> MatchReport:
    """Match *records* against *identity* and explain the outcome."""
    matches = filter_matches(records, identity)
    result = select_booking(matches, auto_resolve=auto_resolve, now=now)
    return MatchReport(
        result=result,
        records_scanned=len(records),
        matches=tuple(matches),
        auto_resolved=isinstance(result, Found) and len(matches) > 1,
    )


def match_and_select(
    identity: NormalizedIdentity,
    records: Sequence[RecordValue],
    *,
    auto_resolve: bool,
    now: datetime | None = None,
) -> SelectionResult:
    """Return ``Found``, ``NotFound`` or ``Ambiguous`` for *identity*."""
    return match_and_report(identity, records, auto_resolve=auto_resolve, now=now).result
