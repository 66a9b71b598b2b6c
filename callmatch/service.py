"""Booking lookup service.

Wires untrusted tool-call payloads through identity normalization, the
record source and the matching core, and forwards cancel / reschedule
requests to the mutation collaborator.

Errors
------
* ``find_booking`` raises :class:`ValidationError` for bad caller input and
  lets :class:`UpstreamError` from the record source propagate.
* ``cancel_booking`` and ``reschedule_booking`` report upstream failures as
  outcome objects instead of raising.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from callmatch.calcom.client import BookingMutations, CalComClient, RecordSource, upstream_message
from callmatch.core.errors import UpstreamError
from callmatch.core.logging import setup_logging
from callmatch.core.settings import Settings, get_settings
from callmatch.matching.extractor import RecordValue
from callmatch.matching.identity import normalize_identity
from callmatch.matching.payload import (
    booking_action_from_payload,
    caller_identity_from_payload,
    raw_phone_from_payload,
)
from callmatch.matching.resolver import MatchReport, match_and_report
from callmatch.matching.selection import booking_status
from callmatch.normalization.phone_normalizer import PhoneReadback, describe_phone

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Outcome types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BookingSummary:
    uid: str | None
    title: str | None
    status: str | None
    start: str | None
    end: str | None


@dataclass(frozen=True)
class CancelOutcome:
    ok: bool
    already_cancelled: bool = False
    error: str | None = None


@dataclass(frozen=True)
class RescheduleOutcome:
    success: bool
    updated_start_time: str | None = None
    error: Any = None
    status_code: int | None = None


def summarize(record: RecordValue) -> BookingSummary:
    """Project *record* onto the fields read back to a caller."""
    if not isinstance(record, dict):
        return BookingSummary(uid=None, title=None, status=None, start=None, end=None)

    uid = record.get("uid") or record.get("id")

    def _str(key: str, *fallbacks: str) -> str | None:
        for k in (key, *fallbacks):
            if record.get(k) is not None:
                return str(record[k])
        return None

    return BookingSummary(
        uid=str(uid) if uid is not None else None,
        title=_str("title"),
        status=booking_status(record),
        start=_str("start", "startTime", "start_time"),
        end=_str("end", "endTime", "end_time"),
    )


def is_already_cancelled_message(message: str) -> bool:
    lowered = message.lower()
    return "already" in lowered and ("cancelled" in lowered or "canceled" in lowered)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class BookingLookupService:
    """Resolve callers to bookings and forward booking mutations."""

    def __init__(
        self,
        source: RecordSource,
        mutations: BookingMutations,
        settings: Settings | None = None,
    ) -> None:
        self.source = source
        self.mutations = mutations
        self.settings = settings or get_settings()

    def find_booking(self, payload: Any, *, now: datetime | None = None) -> MatchReport:
        caller = caller_identity_from_payload(payload)
        identity = normalize_identity(caller, require_dob=self.settings.require_dob)
        records = self.source.fetch_all()
        report = match_and_report(
            identity,
            records,
            auto_resolve=self.settings.auto_resolve,
            now=now,
        )
        logger.info(
            "lookup: %s (scanned=%d, matches=%d)",
            type(report.result).__name__,
            report.records_scanned,
            len(report.matches),
        )
        return report

    def cancel_booking(self, payload: Any) -> CancelOutcome:
        action = booking_action_from_payload(payload)
        try:
            self.mutations.cancel(action.booking_uid, action.reason)
        except UpstreamError as exc:
            message = upstream_message(exc.body) or str(exc.body or "")
            already = is_already_cancelled_message(message)
            logger.info("lookup: cancel failed (status=%s, already_cancelled=%s)", exc.status_code, already)
            return CancelOutcome(ok=False, already_cancelled=already, error=message or "Cancel failed")
        return CancelOutcome(ok=True)

    def reschedule_booking(self, payload: Any) -> RescheduleOutcome:
        action = booking_action_from_payload(payload, require_start=True)
        try:
            self.mutations.reschedule(action.booking_uid, action.new_start_time, action.reason)
        except UpstreamError as exc:
            logger.info("lookup: reschedule failed (status=%s)", exc.status_code)
            return RescheduleOutcome(success=False, error=exc.body, status_code=exc.status_code)
        return RescheduleOutcome(success=True, updated_start_time=action.new_start_time)

    def normalize_phone_payload(self, payload: Any) -> PhoneReadback:
        return describe_phone(raw_phone_from_payload(payload))


def build_lookup_service(settings: Settings | None = None, *, configure_logging: bool = True) -> BookingLookupService:
    """Return a service backed by :class:`CalComClient` for both collaborators."""
    settings = settings or get_settings()
    if configure_logging:
        setup_logging(settings.log_level)
    client = CalComClient(
        api_key=settings.calcom_api_key,
        base_url=settings.calcom_base_url,
        api_version=settings.calcom_api_version,
        timeout_s=settings.calcom_timeout_s,
        page_size=settings.calcom_page_size,
        max_pages=settings.calcom_max_pages,
    )
    return BookingLookupService(client, client, settings)
