"""Caller identity as heard on the call, and its normalized form."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from callmatch.core.errors import InvalidDate, InvalidName, InvalidPhone, ValidationError
from callmatch.core.logging import mask_phone
from callmatch.normalization.date_normalizer import normalize_date
from callmatch.normalization.name_normalizer import MIN_NAME_TOKENS, name_tokens
from callmatch.normalization.phone_normalizer import last10, normalize_spoken_phone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallerIdentity:
    """Raw identity fields taken from one request payload."""

    full_name: str
    phone_raw: str
    dob_raw: str | None = None


@dataclass(frozen=True)
class NormalizedIdentity:
    """Fully normalized caller identity.

    ``dob_canonical`` is ``None`` when date of birth is not part of the
    active identity; when set, the matcher requires it.
    """

    phone_e164: str
    phone_last10: str
    name_tokens: tuple[str, ...]
    dob_canonical: str | None = None

    def __post_init__(self) -> None:
        if len(self.phone_last10) != 10 or not self.phone_last10.isdigit():
            raise InvalidPhone("phone_last10 must be exactly 10 digits")
        if last10(self.phone_e164) != self.phone_last10:
            raise InvalidPhone("phone_e164 and phone_last10 disagree")
        if len(self.name_tokens) < MIN_NAME_TOKENS or not all(self.name_tokens):
            raise InvalidName("Full name must include a first and last name")
        if any(t != t.lower() for t in self.name_tokens):
            raise InvalidName("Name tokens must be lowercase")
        if self.dob_canonical is not None and normalize_date(self.dob_canonical) != self.dob_canonical:
            raise InvalidDate("dob_canonical must be MM/DD/YY")

    @property
    def dob_required(self) -> bool:
        return self.dob_canonical is not None


def normalize_identity(caller: CallerIdentity, *, require_dob: bool) -> NormalizedIdentity:
    """Normalize every field of *caller* or raise :class:`ValidationError`.

    When *require_dob* is ``False`` the date of birth is ignored entirely;
    when ``True`` it must be present and parse.
    """
    tokens = name_tokens(caller.full_name)
    e164 = normalize_spoken_phone(caller.phone_raw)
    phone_last10 = last10(e164)
    if phone_last10 is None:
        raise InvalidPhone("Invalid phone number after normalization")

    dob = None
    if require_dob:
        if caller.dob_raw is None or not str(caller.dob_raw).strip():
            raise ValidationError("Missing date of birth")
        dob = normalize_date(caller.dob_raw)

    identity = NormalizedIdentity(
        phone_e164=e164,
        phone_last10=phone_last10,
        name_tokens=tokens,
        dob_canonical=dob,
    )
    logger.info(
        "identity: normalized caller (name_tokens=%d, phone=%s, dob=%s)",
        len(tokens),
        mask_phone(phone_last10),
        "yes" if dob else "no",
    )
    return identity
