"""Tests for callmatch/matching/selection.py: tie-break and result types."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from callmatch.matching.matcher import MatchCandidate
from callmatch.matching.selection import (
    AMBIGUOUS_CAP,
    Ambiguous,
    Found,
    NotFound,
    booking_touched,
    parse_timestamp,
    rank_candidates,
    select_booking,
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _iso(dt: datetime) -> str:
    return dt.isoformat().replace("+00:00", "Z")


def _cand(record: dict, index: int) -> MatchCandidate:
    return MatchCandidate(record=record, phone_matched=True, dob_matched=False, name_matched=True, index=index)


def _uids(result) -> list[str]:
    return [r["uid"] for r in result.candidates]


class TestResultCardinality:
    def test_zero_is_not_found(self) -> None:
        assert select_booking([], auto_resolve=True, now=NOW) == NotFound()

    def test_one_is_found(self) -> None:
        record = {"uid": "a", "status": "cancelled"}
        assert select_booking([_cand(record, 0)], auto_resolve=False, now=NOW) == Found(record)

    def test_many_without_auto_resolve_is_ambiguous(self) -> None:
        records = [{"uid": "a"}, {"uid": "b"}]
        result = select_booking([_cand(r, i) for i, r in enumerate(records)], auto_resolve=False, now=NOW)
        assert isinstance(result, Ambiguous)
        assert _uids(result) == ["a", "b"]

    def test_ambiguous_capped(self) -> None:
        records = [{"uid": f"b{i}"} for i in range(AMBIGUOUS_CAP + 3)]
        result = select_booking([_cand(r, i) for i, r in enumerate(records)], auto_resolve=False, now=NOW)
        assert len(result.candidates) == AMBIGUOUS_CAP
        assert _uids(result) == [f"b{i}" for i in range(AMBIGUOUS_CAP)]

    def test_result_types_are_distinct(self) -> None:
        assert not isinstance(NotFound(), (Found, Ambiguous))


class TestTieBreak:
    def test_non_cancelled_dominates_earlier_start(self) -> None:
        a = {"uid": "A", "status": "cancelled", "start": _iso(NOW + timedelta(days=1))}
        b = {"uid": "B", "status": "confirmed", "start": _iso(NOW + timedelta(days=7))}
        result = select_booking([_cand(a, 0), _cand(b, 1)], auto_resolve=True, now=NOW)
        assert result == Found(b)

    def test_earliest_upcoming_start_wins(self) -> None:
        later = {"uid": "later", "status": "accepted", "start": _iso(NOW + timedelta(days=9))}
        sooner = {"uid": "sooner", "status": "accepted", "start": _iso(NOW + timedelta(days=2))}
        result = select_booking([_cand(later, 0), _cand(sooner, 1)], auto_resolve=True, now=NOW)
        assert result == Found(sooner)

    def test_upcoming_beats_past(self) -> None:
        past = {"uid": "past", "start": _iso(NOW - timedelta(days=1)), "updatedAt": _iso(NOW)}
        future = {"uid": "future", "start": _iso(NOW + timedelta(days=30))}
        result = select_booking([_cand(past, 0), _cand(future, 1)], auto_resolve=True, now=NOW)
        assert result == Found(future)

    def test_most_recently_updated_when_none_upcoming(self) -> None:
        old = {"uid": "old", "start": _iso(NOW - timedelta(days=5)), "updatedAt": _iso(NOW - timedelta(days=4))}
        fresh = {"uid": "fresh", "start": _iso(NOW - timedelta(days=9)), "updatedAt": _iso(NOW - timedelta(days=1))}
        result = select_booking([_cand(old, 0), _cand(fresh, 1)], auto_resolve=True, now=NOW)
        assert result == Found(fresh)

    def test_created_used_when_updated_missing(self) -> None:
        a = {"uid": "a", "createdAt": _iso(NOW - timedelta(days=3))}
        b = {"uid": "b", "createdAt": _iso(NOW - timedelta(days=1))}
        result = select_booking([_cand(a, 0), _cand(b, 1)], auto_resolve=True, now=NOW)
        assert result == Found(b)

    def test_timestamped_before_untimestamped(self) -> None:
        bare = {"uid": "bare"}
        stamped = {"uid": "stamped", "createdAt": _iso(NOW - timedelta(days=100))}
        result = select_booking([_cand(bare, 0), _cand(stamped, 1)], auto_resolve=True, now=NOW)
        assert result == Found(stamped)

    def test_fetch_order_breaks_full_ties(self) -> None:
        first = {"uid": "first", "status": "accepted"}
        second = {"uid": "second", "status": "accepted"}
        result = select_booking([_cand(second, 1), _cand(first, 0)], auto_resolve=True, now=NOW)
        assert result == Found(first)

    def test_canceled_spelling_also_demoted(self) -> None:
        a = {"uid": "a", "status": "CANCELED", "start": _iso(NOW + timedelta(days=1))}
        b = {"uid": "b", "status": "pending"}
        result = select_booking([_cand(a, 0), _cand(b, 1)], auto_resolve=True, now=NOW)
        assert result == Found(b)

    def test_ambiguous_sorted_by_ranking(self) -> None:
        a = {"uid": "A", "status": "cancelled", "start": _iso(NOW + timedelta(days=1))}
        b = {"uid": "B", "status": "confirmed", "start": _iso(NOW + timedelta(days=7))}
        c = {"uid": "C", "status": "confirmed", "start": _iso(NOW + timedelta(days=2))}
        result = select_booking([_cand(a, 0), _cand(b, 1), _cand(c, 2)], auto_resolve=False, now=NOW)
        assert _uids(result) == ["C", "B", "A"]

    def test_ranking_is_deterministic(self) -> None:
        records = [{"uid": str(i), "status": "accepted"} for i in range(4)]
        cands = [_cand(r, i) for i, r in enumerate(records)]
        assert rank_candidates(cands, NOW) == rank_candidates(list(reversed(cands)), NOW)

    def test_naive_now_accepted(self) -> None:
        a = {"uid": "a", "start": "2030-01-01T00:00:00Z"}
        b = {"uid": "b", "start": "2029-01-01T00:00:00Z"}
        ranked = rank_candidates([_cand(a, 0), _cand(b, 1)], datetime(2026, 1, 1))
        assert [c.record["uid"] for c in ranked] == ["b", "a"]


class TestTimestamps:
    def test_zulu_suffix(self) -> None:
        assert parse_timestamp("2026-10-19T12:00:00.000Z") == NOW

    def test_naive_string_assumed_utc(self) -> None:
        assert parse_timestamp("2026-10-19T12:00:00") == NOW

    def test_epoch_millis(self) -> None:
        assert parse_timestamp(int(NOW.timestamp() * 1000)) == NOW

    def test_epoch_seconds(self) -> None:
        assert parse_timestamp(NOW.timestamp()) == NOW

    @pytest.mark.parametrize("value", [None, True, "tomorrow", [], {}])
    def test_unparseable(self, value) -> None:
        assert parse_timestamp(value) is None

    def test_snake_case_updated(self) -> None:
        assert booking_touched({"updated_at": "2026-10-19T12:00:00Z"}) == NOW
