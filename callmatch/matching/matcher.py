"""Record matcher.

Decides whether one booking record belongs to a caller:

* phone: some phone candidate, or a phone-shaped run inside one, shares
  the caller's last-10 digits
* name: every caller name token is a substring of the record's title
  and attendee names (case-insensitive, whitespace-collapsed)
* DOB (only when the identity carries one): some free-text leaf
  contains a date that normalizes to the caller's ``MM/DD/YY``

A record matches iff phone and name match, and DOB matches when required.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

from callmatch.matching.extractor import RecordValue, extract_candidates
from callmatch.matching.identity import NormalizedIdentity
from callmatch.normalization.date_normalizer import find_dates
from callmatch.normalization.name_normalizer import squash_text
from callmatch.normalization.phone_normalizer import last10

logger = logging.getLogger(__name__)

# Phone-shaped digit runs inside free text ("call 304-111-1111, DOB 2/24/88").
_PHONE_RUN_RE = re.compile(r"\+?\d[\d\s().-]{8,}\d")


@dataclass(frozen=True)
class MatchCandidate:
    record: RecordValue
    phone_matched: bool
    dob_matched: bool
    name_matched: bool
    dob_required: bool = False
    index: int = 0

    @property
    def is_match(self) -> bool:
        return self.phone_matched and self.name_matched and (not self.dob_required or self.dob_matched)


def _phone_keys(value: str) -> set[str]:
    """Last-10 keys of the whole leaf and of each phone-shaped run inside it."""
    keys = {last10(value)}
    keys.update(last10(run) for run in _PHONE_RUN_RE.findall(value))
    keys.discard(None)
    return keys


def match_record(record: RecordValue, identity: NormalizedIdentity, index: int = 0) -> MatchCandidate:
    """Score *record* against *identity*; *index* is the record's fetch position."""
    candidates = extract_candidates(record)

    phone_matched = any(identity.phone_last10 in _phone_keys(phone) for phone in candidates.phones)

    dob_matched = False
    if identity.dob_required:
        dob_matched = any(identity.dob_canonical in find_dates(text) for text in candidates.texts)

    haystack = squash_text(" ".join(candidates.display_names))
    name_matched = bool(haystack) and all(token in haystack for token in identity.name_tokens)

    return MatchCandidate(
        record=record,
        phone_matched=phone_matched,
        dob_matched=dob_matched,
        name_matched=name_matched,
        dob_required=identity.dob_required,
        index=index,
    )


def filter_matches(records: Iterable[RecordValue], identity: NormalizedIdentity) -> list[MatchCandidate]:
    """Return the matching candidates of *records*, in fetch order."""
    matches: list[MatchCandidate] = []
    scanned = 0
    for index, record in enumerate(records):
        scanned += 1
        candidate = match_record(record, identity, index)
        if candidate.is_match:
            matches.append(candidate)

    logger.info("matcher: scanned=%d matched=%d", scanned, len(matches))
    return matches
