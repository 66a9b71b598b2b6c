"""Phone number normalizer.

Converts digits, punctuated numbers, or spoken number words into a US-first
E.164 string (e.g. ``+13041111111``) and exposes ``last10`` as the sole
comparison key used by the record matcher.

Rules applied in order
----------------------
1. Exactly 10 digits → ``+1`` prefix (US assumed).
2. 11 digits starting with ``1`` → ``+`` prefix.
3. Input starting with ``+`` and carrying at least 11 digits → ``+`` prefix.
4. Anything else raises :class:`InvalidPhone`.

Safety rule: raw values are never logged.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from callmatch.core.errors import InvalidPhone

logger = logging.getLogger(__name__)

_NON_DIGIT_RE = re.compile(r"\D")
_WORD_TOKEN_RE = re.compile(r"[a-z]+|\d+")
_ALPHA_RE = re.compile(r"[A-Za-z]")

_DIGIT_WORDS: dict[str, str] = {
    "zero": "0", "one": "1", "two": "2", "three": "3", "four": "4",
    "five": "5", "six": "6", "seven": "7", "eight": "8", "nine": "9",
    # Homophones produced by speech-to-text
    "for": "4", "ate": "8", "oh": "0", "o": "0",
}

_REPEAT_WORDS: dict[str, int] = {"double": 2, "triple": 3}


def digits_only(value: object) -> str:
    """Return only the ASCII digits of *value* (``None`` → ``""``)."""
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return _NON_DIGIT_RE.sub("", str(value))


def normalize_phone(raw: object) -> str:
    """Return *raw* in E.164 form or raise :class:`InvalidPhone`.

    Idempotent: ``normalize_phone(normalize_phone(x)) == normalize_phone(x)``.
    """
    digits = digits_only(raw)

    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"
    if str(raw if raw is not None else "").strip().startswith("+") and len(digits) >= 11:
        return f"+{digits}"

    # SAFETY: do not log raw value
    logger.debug("phone_normalizer: rejected input (digits=%d)", len(digits))
    raise InvalidPhone("Invalid phone number after normalization")


def words_to_digits(text: str) -> str:
    """Convert spoken number words into a digit string.

    ``"three oh four double one"`` → ``"30411"``.  Literal digit runs are
    kept, ``double``/``triple`` repeat the first digit that follows them and
    unrecognized tokens are dropped.
    """
    out: list[str] = []
    repeat = 1
    for token in _WORD_TOKEN_RE.findall(str(text or "").lower()):
        if token in _REPEAT_WORDS:
            repeat = _REPEAT_WORDS[token]
            continue
        if token.isdigit():
            digits = token
        elif token in _DIGIT_WORDS:
            digits = _DIGIT_WORDS[token]
        else:
            continue
        out.append(digits[0] * repeat + digits[1:])
        repeat = 1
    return "".join(out)


def normalize_spoken_phone(raw: object) -> str:
    """Normalize *raw* that may mix spoken number words and digits."""
    text = str(raw if raw is not None else "")
    if not _ALPHA_RE.search(text):
        return normalize_phone(raw)

    prefix = "+" if text.strip().startswith("+") else ""
    return normalize_phone(prefix + words_to_digits(text))


def last10(value: object) -> str | None:
    """Return the rightmost 10 digits of *value*, or ``None`` if fewer exist."""
    digits = digits_only(value)
    return digits[-10:] if len(digits) >= 10 else None


@dataclass(frozen=True)
class PhoneReadback:
    """What the agent reads back to the caller after hearing a number."""

    is_valid: bool
    normalized_e164: str | None
    pretty: str | None
    last4: str | None
    digits_found: str
    digits_count: int


def format_pretty(value: object) -> str | None:
    """Return ``"304-111-1111"`` style grouping of the last 10 digits."""
    d10 = last10(value)
    if d10 is None:
        return None
    return f"{d10[:3]}-{d10[3:6]}-{d10[6:]}"


def describe_phone(raw: object) -> PhoneReadback:
    """Return a :class:`PhoneReadback` for *raw*.  Never raises."""
    text = str(raw if raw is not None else "")
    found = words_to_digits(text) if _ALPHA_RE.search(text) else digits_only(raw)
    try:
        e164 = normalize_spoken_phone(raw)
    except InvalidPhone:
        return PhoneReadback(
            is_valid=False,
            normalized_e164=None,
            pretty=None,
            last4=None,
            digits_found=found,
            digits_count=len(found),
        )

    d10 = last10(e164)
    return PhoneReadback(
        is_valid=True,
        normalized_e164=e164,
        pretty=format_pretty(e164),
        last4=d10[-4:] if d10 else None,
        digits_found=found,
        digits_count=len(found),
    )
