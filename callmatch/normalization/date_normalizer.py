"""Date-of-birth normalizer.

Converts a free-text date to the fixed-width ``MM/DD/YY`` form used to
compare a caller's date of birth with values found inside booking records.

Resolution order
----------------
1. ISO ``YYYY-MM-DD`` prefix → mapped directly.
2. A month name or abbreviation fixes the month; the first remaining number
   in 1–31 is the day and a 4-digit number (last two digits kept) or a
   remaining 1–2 digit number is the year.
3. No month name and exactly three numbers → month / day / year by
   position (US ordering).

Anything else raises :class:`InvalidDate`.  Day-of-month is range-checked
only (1–31); calendar validity such as 02/31 is not enforced.

Safety rule: raw values are never logged.
"""
from __future__ import annotations

import logging
import re

from callmatch.core.errors import InvalidDate

logger = logging.getLogger(__name__)

_ISO_RE = re.compile(r"^\s*(\d{4})-(\d{1,2})-(\d{1,2})(?!\d)")
_NUMBER_RE = re.compile(r"\d+")
_WORD_RE = re.compile(r"[a-z]+")

_MONTHS: dict[str, int] = {
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11,
    "december": 12,
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "jun": 6, "jul": 7, "aug": 8,
    "sep": 9, "sept": 9, "oct": 10, "nov": 11, "dec": 12,
}

_MONTH_ALT = "|".join(sorted(_MONTHS, key=len, reverse=True))

# Date-like substrings inside free text, tried in this order.
_DATE_LIKE_RES: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b\d{4}-\d{1,2}-\d{1,2}(?!\d)"),
    re.compile(r"\b\d{1,2}[/.-]\d{1,2}[/.-](?:\d{4}|\d{2})(?!\d)"),
    re.compile(rf"\b(?:{_MONTH_ALT})\.?\s+\d{{1,2}}(?:st|nd|rd|th)?,?\s+\d{{2,4}}\b", re.IGNORECASE),
    re.compile(rf"\b\d{{1,2}}(?:st|nd|rd|th)?\s+(?:of\s+)?(?:{_MONTH_ALT})\.?,?\s+\d{{2,4}}\b", re.IGNORECASE),
)


def _format(mm: int, dd: int, yy: int) -> str:
    return f"{mm:02d}/{dd:02d}/{yy:02d}"


def _year_from_token(token: str) -> int | None:
    if len(token) == 4:
        return int(token) % 100
    if len(token) <= 2:
        return int(token)
    return None


def _day_and_year(tokens: list[str]) -> tuple[int | None, int | None]:
    remaining = list(tokens)

    dd = None
    for i, token in enumerate(remaining):
        if len(token) <= 2 and 1 <= int(token) <= 31:
            dd = int(token)
            del remaining[i]
            break

    yy = None
    for token in remaining:
        if len(token) == 4:
            yy = int(token) % 100
            break
    if yy is None:
        for token in remaining:
            if len(token) <= 2:
                yy = int(token)
                break
    return dd, yy


def normalize_date(raw: object) -> str:
    """Return *raw* as ``MM/DD/YY`` or raise :class:`InvalidDate`.

    Idempotent: ``normalize_date(normalize_date(x)) == normalize_date(x)``.
    """
    text = str(raw if raw is not None else "").strip()
    if not text:
        raise InvalidDate("Missing date")

    iso = _ISO_RE.match(text)
    if iso:
        year, month, day = (int(g) for g in iso.groups())
        if 1 <= month <= 12 and 1 <= day <= 31:
            return _format(month, day, year % 100)
        raise InvalidDate("Date out of range")

    lowered = text.lower()
    numbers = _NUMBER_RE.findall(lowered)

    mm = None
    for word in _WORD_RE.findall(lowered):
        if word in _MONTHS:
            mm = _MONTHS[word]
            break

    if mm is not None:
        dd, yy = _day_and_year(numbers)
    elif len(numbers) == 3:
        first, second, third = numbers
        mm = int(first) if len(first) <= 2 and 1 <= int(first) <= 12 else None
        dd = int(second) if len(second) <= 2 and 1 <= int(second) <= 31 else None
        yy = _year_from_token(third)
    else:
        dd = yy = None

    if mm is None or dd is None or yy is None:
        # SAFETY: do not log raw value
        logger.debug("date_normalizer: could not derive date (length=%d)", len(text))
        raise InvalidDate("Invalid date")

    return _format(mm, dd, yy)


def find_dates(text: object) -> list[str]:
    """Return the distinct normalized dates found in *text*, in order.

    Substrings that look like dates but do not normalize are skipped.
    """
    if text is None:
        return []
    source = str(text)

    hits: list[tuple[int, str]] = []
    for pattern in _DATE_LIKE_RES:
        for match in pattern.finditer(source):
            try:
                hits.append((match.start(), normalize_date(match.group(0))))
            except InvalidDate:
                continue

    found: list[str] = []
    for _, value in sorted(hits, key=lambda hit: hit[0]):
        if value not in found:
            found.append(value)
    return found
