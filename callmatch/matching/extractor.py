"""Candidate extraction from semi-structured booking records.

Booking payloads from the scheduling service vary in shape: phones live on
attendees, in booking-field responses, in metadata, or only in free-text
notes.  Instead of probing known paths, every record is walked once as a
generic tree and its leaves are collected as strings.

Walk guarantees
---------------
* Depth is bounded by :data:`MAX_DEPTH`; deeper subtrees are skipped.
* Each ``dict`` / ``list`` is visited at most once (cycle guard by ``id``).
* Mapping keys are visited in insertion order, so two walks over the same
  record produce identical candidates in identical order.

Safety rule: raw values are never logged.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from callmatch.normalization.phone_normalizer import digits_only

logger = logging.getLogger(__name__)

# A booking record as decoded from JSON: None, bool, int, float, str, list, dict.
RecordValue = Any

MAX_DEPTH = 12
MIN_PHONE_DIGITS = 10

_PHONE_KEY_RE = re.compile(r"phone|mobile|whatsapp|^cell|^sms|^tel$|^telephone$", re.IGNORECASE)

# Top-level keys whose leaves are searched first, in this order.
_PRIORITY_KEYS: tuple[frozenset[str], ...] = (
    frozenset({"attendees", "attendee", "guests"}),
    frozenset({"responses", "bookingfieldsresponses", "custominputs", "userfieldsresponses"}),
    frozenset({"metadata"}),
    frozenset({"description", "notes", "additionalnotes", "note"}),
)


@dataclass(frozen=True)
class RecordCandidates:
    """Leaf values pulled from one record."""

    phones: tuple[str, ...]
    texts: tuple[str, ...]
    display_names: tuple[str, ...]


@dataclass(frozen=True)
class _Leaf:
    path: tuple[str, ...]
    value: str


def _leaf_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (str, int, float)):
        return str(value)
    return None


def walk_leaves(record: RecordValue, *, max_depth: int = MAX_DEPTH) -> list[_Leaf]:
    """Return every leaf under *record* with the key path that leads to it."""
    leaves: list[_Leaf] = []
    visited: set[int] = set()

    def _walk(node: Any, path: tuple[str, ...], depth: int) -> None:
        if isinstance(node, (dict, list, tuple)):
            if depth > max_depth or id(node) in visited:
                return
            visited.add(id(node))
            if isinstance(node, dict):
                for key, child in node.items():
                    _walk(child, path + (str(key),), depth + 1)
            else:
                for child in node:
                    _walk(child, path, depth + 1)
            return

        text = _leaf_text(node)
        if text is not None and text.strip():
            leaves.append(_Leaf(path=path, value=text))

    _walk(record, (), 0)
    return leaves


def _is_phone_path(path: tuple[str, ...]) -> bool:
    return any(_PHONE_KEY_RE.search(key) for key in path)


def _priority(path: tuple[str, ...]) -> int:
    if not path:
        return len(_PRIORITY_KEYS)
    head = path[0].replace("_", "").lower()
    for rank, keys in enumerate(_PRIORITY_KEYS):
        if head in keys:
            return rank
    return len(_PRIORITY_KEYS)


def _dedupe(values: list[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(values))


def _display_names(record: RecordValue) -> list[str]:
    if not isinstance(record, dict):
        return []

    names: list[str] = []
    title = record.get("title")
    if isinstance(title, str):
        names.append(title)

    attendees = record.get("attendees")
    if isinstance(attendees, list):
        for attendee in attendees:
            if isinstance(attendee, dict) and isinstance(attendee.get("name"), str):
                names.append(attendee["name"])

    responses = record.get("responses") or record.get("bookingFieldsResponses")
    if isinstance(responses, dict):
        name = responses.get("name")
        if isinstance(name, str):
            names.append(name)
        elif isinstance(name, dict):
            parts = [name.get("firstName"), name.get("lastName")]
            names.append(" ".join(p for p in parts if isinstance(p, str)))

    return [n for n in names if n.strip()]


def extract_candidates(record: RecordValue) -> RecordCandidates:
    """Collect phone, free-text and display-name candidates from *record*."""
    leaves = walk_leaves(record)

    by_key = [leaf.value for leaf in leaves if _is_phone_path(leaf.path)]
    by_digits = [leaf.value for leaf in leaves if len(digits_only(leaf.value)) >= MIN_PHONE_DIGITS]

    # sorted() is stable, so traversal order is kept within each tier
    ordered = sorted(leaves, key=lambda leaf: _priority(leaf.path))

    candidates = RecordCandidates(
        phones=_dedupe(by_key + by_digits),
        texts=_dedupe([leaf.value for leaf in ordered]),
        display_names=_dedupe(_display_names(record)),
    )
    logger.debug(
        "extractor: leaves=%d phones=%d names=%d",
        len(leaves),
        len(candidates.phones),
        len(candidates.display_names),
    )
    return candidates
