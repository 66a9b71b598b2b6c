"""Error taxonomy.

``ValidationError`` and its subclasses always originate from caller input
and are never retried.  ``UpstreamError`` wraps a failure of the Cal.com
collaborator and carries the upstream status and body unchanged.

``NotFound`` and ``Ambiguous`` are *not* errors; see
:mod:`callmatch.matching.selection`.
"""
from __future__ import annotations

from typing import Any


class ValidationError(ValueError):
    """Raised when caller-supplied identity input is missing or malformed."""


class InvalidPhone(ValidationError):
    """Raised when a phone value cannot be normalized to E.164."""


class InvalidDate(ValidationError):
    """Raised when a date value cannot be normalized to ``MM/DD/YY``."""


class InvalidName(ValidationError):
    """Raised when a name yields fewer than two tokens."""


class MissingFields(ValidationError):
    """Raised when a payload lacks one or more required fields."""

    def __init__(self, fields: list[str]) -> None:
        self.fields = list(fields)
        super().__init__(f"Missing {' or '.join(self.fields)}")


class UpstreamError(RuntimeError):
    """Raised when the record source or a mutation call fails.

    ``status_code`` is ``None`` when the request never produced a response
    (timeout, connection refused).
    """

    def __init__(self, message: str, *, status_code: int | None = None, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ConfigurationError(RuntimeError):
    """Raised when a required setting (e.g. ``CALCOM_API_KEY``) is absent."""
