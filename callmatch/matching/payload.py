"""Payload extraction rules.

Voice-agent tool calls arrive in several shapes::

    {"args": {"full_name": "...", "phone_number": "..."}}
    {"fullName": "...", "phoneNumber": "..."}
    {"args": ["Emily Smith", "+13041111111"]}
    ["Emily Smith", "+13041111111"]

Each field is described by an ordered list of :class:`ExtractionRule`
objects, ``(path, aliases)`` pairs that compile into a pydantic
``AliasChoices``.  The first rule that finds a value wins.  Rules under
``args`` (keyed, then positional) come before root-level rules because the
tool-call envelope uses a root ``name`` key for the function name.

Safety rule: raw values are never logged.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from pydantic import AliasChoices, AliasPath, BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from callmatch.core.errors import MissingFields, ValidationError
from callmatch.matching.identity import CallerIdentity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionRule:
    """Look for any of *aliases* under *path* (``()`` is the payload root)."""

    path: tuple[str, ...]
    aliases: tuple[str | int, ...]

    def alias_paths(self) -> list[AliasPath | str]:
        out: list[AliasPath | str] = []
        for alias in self.aliases:
            if not self.path and isinstance(alias, str):
                out.append(alias)
            else:
                out.append(AliasPath(*self.path, alias))
        return out


def compile_rules(rules: list[ExtractionRule]) -> AliasChoices:
    choices: list[AliasPath | str] = []
    for rule in rules:
        choices.extend(rule.alias_paths())
    return AliasChoices(*choices)


def _keyed(
    aliases: tuple[str, ...],
    position: int | None = None,
    root_aliases: tuple[str, ...] | None = None,
) -> list[ExtractionRule]:
    rules = [ExtractionRule(("args",), aliases)]
    if position is not None:
        rules.append(ExtractionRule(("args",), (position,)))
    rules.append(ExtractionRule((), aliases if root_aliases is None else root_aliases))
    return rules


# A root-level "name" is the tool-call function name, never the caller.
FULL_NAME_RULES = _keyed(("full_name", "fullName", "name"), position=0, root_aliases=("full_name", "fullName"))
PHONE_RULES = _keyed(("phone_number", "phoneNumber", "attendeePhoneNumber", "phone"), position=1)
DOB_RULES = _keyed(("dob", "date_of_birth", "dateOfBirth", "birthdate", "birth_date"), position=2)

BOOKING_UID_RULES = _keyed(("booking_uid", "bookingUid", "uid", "booking_id", "bookingId"))
NEW_START_RULES = _keyed(("new_start_time", "newStartTime", "start_time", "startTime", "start"))
REASON_RULES = _keyed((
    "reason",
    "cancellation_reason",
    "cancellationReason",
    "rescheduling_reason",
    "reschedulingReason",
))

RAW_PHONE_RULES = _keyed(("raw_phone", "rawPhone", "phone", "phone_number", "phoneNumber"))


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True, frozen=True)


class CallerPayload(_Payload):
    full_name: str | None = Field(default=None, validation_alias=compile_rules(FULL_NAME_RULES))
    phone_number: str | None = Field(default=None, validation_alias=compile_rules(PHONE_RULES))
    dob: str | None = Field(default=None, validation_alias=compile_rules(DOB_RULES))


class BookingActionPayload(_Payload):
    booking_uid: str | None = Field(default=None, validation_alias=compile_rules(BOOKING_UID_RULES))
    new_start_time: str | None = Field(default=None, validation_alias=compile_rules(NEW_START_RULES))
    reason: str | None = Field(default=None, validation_alias=compile_rules(REASON_RULES))


class PhonePayload(_Payload):
    raw_phone: str | None = Field(default=None, validation_alias=compile_rules(RAW_PHONE_RULES))


def _as_mapping(payload: Any) -> dict:
    if payload is None:
        return {}
    if isinstance(payload, (list, tuple)):
        return {"args": list(payload)}
    if isinstance(payload, dict):
        return payload
    raise ValidationError(f"Payload must be an object or array, got {type(payload).__name__}")


def parse_payload(model: type[_Payload], payload: Any) -> _Payload:
    """Validate *payload* into *model*, mapping pydantic errors to ours."""
    data = _as_mapping(payload)
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
        logger.debug("payload: rejected %s (fields=%s)", model.__name__, fields)
        raise ValidationError(f"Malformed payload fields: {', '.join(fields) or 'unknown'}") from exc


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def caller_identity_from_payload(payload: Any) -> CallerIdentity:
    """Build a :class:`CallerIdentity` from any supported payload shape."""
    parsed = parse_payload(CallerPayload, payload)
    missing = [
        name for name, value in (("full_name", parsed.full_name), ("phone_number", parsed.phone_number))
        if _blank(value)
    ]
    if missing:
        raise MissingFields(missing)
    return CallerIdentity(
        full_name=parsed.full_name,
        phone_raw=parsed.phone_number,
        dob_raw=None if _blank(parsed.dob) else parsed.dob,
    )


def booking_action_from_payload(payload: Any, *, require_start: bool = False) -> BookingActionPayload:
    """Parse a cancel / reschedule payload, checking its required fields."""
    parsed = parse_payload(BookingActionPayload, payload)
    missing = []
    if _blank(parsed.booking_uid):
        missing.append("booking_uid")
    if require_start and _blank(parsed.new_start_time):
        missing.append("new_start_time")
    if missing:
        raise MissingFields(missing)
    return parsed


def raw_phone_from_payload(payload: Any) -> str:
    parsed = parse_payload(PhonePayload, payload)
    if _blank(parsed.raw_phone):
        raise MissingFields(["raw_phone"])
    return parsed.raw_phone
