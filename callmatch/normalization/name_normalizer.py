"""Name normalizer.

Converts a caller's display name into lowercase, space-separated tokens
used for substring matching against booking titles and attendee names.

Rules applied in order
----------------------
1. Strip leading / trailing whitespace.
2. Collapse internal runs of whitespace to one space.
3. Lowercase.
4. Require at least two tokens (first and last name).

Safety rule: raw values are never logged.
"""
from __future__ import annotations

import logging

from callmatch.core.errors import InvalidName

logger = logging.getLogger(__name__)

MIN_NAME_TOKENS = 2


def squash_text(raw: object) -> str:
    """Trim, collapse whitespace and lowercase *raw* without validating it."""
    if raw is None:
        return ""
    return " ".join(str(raw).split()).lower()


def normalize_name(raw: object) -> str:
    """Return *raw* in canonical ``"first last"`` lowercase form.

    Raises
    ------
    InvalidName
        If fewer than two tokens remain after normalization.
    """
    text = squash_text(raw)
    count = len(text.split())
    if count < MIN_NAME_TOKENS:
        logger.debug("name_normalizer: rejected name (tokens=%d)", count)
        raise InvalidName("Full name must include a first and last name")
    return text


def name_tokens(raw: object) -> tuple[str, ...]:
    """Return the tokens of :func:`normalize_name` applied to *raw*."""
    return tuple(normalize_name(raw).split(" "))
