"""Logging setup with caller-PII redaction.

Safety rule: raw values are never logged.  Phone numbers, dates of birth
and e-mail addresses are redacted from every record that reaches a
configured handler; code that wants to reference a phone logs its last
four digits via :func:`mask_phone`.
"""
import logging
import logging.config
import re

_MONTHS = (
    r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?"
)

PII_PATTERNS = [
    re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}"),
    re.compile(r"\+\d{8,15}\b"),
    re.compile(r"\b(?:1[-.\s]?)?(?:\(?\d{3}\)?[-.\s]?)\d{3}[-.\s]?\d{4}\b"),
    re.compile(r"\b\d{1,4}[/.-]\d{1,2}[/.-]\d{2,4}\b"),
    re.compile(rf"(?i)\b{_MONTHS}\s+\d{{1,2}}(?:st|nd|rd|th)?,?\s+\d{{2,4}}\b"),
    re.compile(r"(?i)(raw_value\s*[=:]\s*)([^,\s]+)"),
]


def redact(text: str) -> str:
    """Replace every PII match in *text* with ``[REDACTED]``."""
    for pattern in PII_PATTERNS:
        if "raw_value" in pattern.pattern.lower():
            text = pattern.sub(r"\1[REDACTED]", text)
        else:
            text = pattern.sub("[REDACTED]", text)
    return text


def mask_phone(digits: str | None) -> str:
    """Return ``***-***-1234`` for a phone value, or ``<none>``."""
    tail = re.sub(r"\D", "", digits or "")[-4:]
    return f"***-***-{tail}" if len(tail) == 4 else "<none>"


class PIISafeFilter(logging.Filter):
    """Redact PII from the fully rendered message of every record.

    Args are interpolated before redaction and then cleared.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            rendered = record.getMessage()
        except (TypeError, ValueError):
            rendered = str(record.msg)
        record.msg = redact(rendered)
        record.args = ()
        return True


def setup_logging(level: str | None = None) -> None:
    """Install the console handler with :class:`PIISafeFilter` attached.

    *level* overrides ``LOG_LEVEL`` from settings.
    """
    from callmatch.core.settings import get_settings

    settings = get_settings()
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "pii_safe": {
                    "()": "callmatch.core.logging.PIISafeFilter",
                }
            },
            "formatters": {
                "default": {
                    "format": f"%(asctime)s %(levelname)s [{settings.app_name}] %(name)s %(message)s",
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "filters": ["pii_safe"],
                }
            },
            "loggers": {
                "": {
                    "handlers": ["console"],
                    "level": (level or settings.log_level).upper(),
                },
                # httpx logs full request URLs at INFO
                "httpx": {
                    "handlers": ["console"],
                    "level": "WARNING",
                    "propagate": False,
                },
            },
        }
    )
