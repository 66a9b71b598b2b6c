"""Cal.com REST client: record source and booking mutations.

Wraps the Cal.com v2 bookings API with:

- **Bounded pagination**: ``fetch_all()`` pages through ``GET /v2/bookings``
  with ``take``/``skip`` and never requests more than
  ``settings.calcom_max_pages`` pages.
- **All-or-nothing reads**: if any page fails the partial result is
  discarded and :class:`UpstreamError` is raised.
- **Pass-through mutations**: ``cancel()`` and ``reschedule()`` forward to
  the upstream endpoints and surface failures with status and body intact.

The client uses ``httpx`` for synchronous HTTP calls; retry policy, if any,
belongs to the caller.
"""
from __future__ import annotations

import logging
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from callmatch.core.errors import ConfigurationError, UpstreamError
from callmatch.core.settings import get_settings
from callmatch.matching.extractor import RecordValue

logger = logging.getLogger(__name__)

DEFAULT_CANCEL_REASON = "Canceled by caller request"
DEFAULT_RESCHEDULE_REASON = "Patient requested reschedule"


# ---------------------------------------------------------------------------
# Collaborator interfaces
# ---------------------------------------------------------------------------


class RecordSource(Protocol):
    def fetch_all(self) -> list[RecordValue]:
        ...


class BookingMutations(Protocol):
    def cancel(self, uid: str, reason: str | None = None) -> Any:
        ...

    def reschedule(self, uid: str, new_start: str, reason: str | None = None) -> Any:
        ...


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _page_records(data: Any) -> list[RecordValue] | None:
    """Pull the booking list out of a v1 or v2 response body.

    Returns ``None`` when the body carries no recognizable booking list.
    """
    if not isinstance(data, dict):
        return None
    inner = data.get("data")
    if isinstance(inner, list):
        return inner
    if isinstance(inner, dict) and isinstance(inner.get("bookings"), list):
        return inner["bookings"]
    if isinstance(data.get("bookings"), list):
        return data["bookings"]
    return None


def _has_next_page(data: Any) -> bool | None:
    if not isinstance(data, dict):
        return None
    pagination = data.get("pagination")
    if isinstance(pagination, dict) and "hasNextPage" in pagination:
        return bool(pagination["hasNextPage"])
    return None


def upstream_message(body: Any) -> str:
    """Best-effort human-readable message from an upstream error body."""
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        if body.get("message"):
            return str(body["message"])
    return ""


# ---------------------------------------------------------------------------
# CalComClient
# ---------------------------------------------------------------------------


class CalComClient:
    """Synchronous client for the Cal.com bookings API.

    Parameters
    ----------
    api_key:
        Cal.com API key.  Defaults to ``settings.calcom_api_key``.
    base_url:
        API root.  Defaults to ``settings.calcom_base_url``.
    api_version:
        Value of the ``cal-api-version`` header.
    timeout_s:
        Per-request timeout in seconds.
    page_size / max_pages:
        Pagination window and hard page cap for :meth:`fetch_all`.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        api_version: str | None = None,
        timeout_s: float | None = None,
        page_size: int | None = None,
        max_pages: int | None = None,
    ) -> None:
        settings = get_settings()
        self.api_key = api_key or settings.calcom_api_key
        self.base_url = (base_url or settings.calcom_base_url).rstrip("/")
        self.api_version = api_version or settings.calcom_api_version
        self.timeout_s = timeout_s if timeout_s is not None else settings.calcom_timeout_s
        self.page_size = page_size or settings.calcom_page_size
        self.max_pages = max_pages or settings.calcom_max_pages

    # -- internals ----------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            raise ConfigurationError("Server misconfigured: missing CALCOM_API_KEY")
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "cal-api-version": self.api_version,
        }

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = self._headers()
        url = f"{self.base_url}{path}"
        try:
            if method == "GET":
                response = httpx.get(url, headers=headers, timeout=self.timeout_s, **kwargs)
            else:
                response = httpx.post(url, headers=headers, timeout=self.timeout_s, **kwargs)
        except httpx.TimeoutException as exc:
            raise UpstreamError(
                f"Cal.com request timed out after {self.timeout_s}s", body=str(exc)
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Cannot reach Cal.com at {self.base_url}", body=str(exc)) from exc

        if not response.is_success:
            body = _json_or_none(response)
            logger.warning("calcom: %s %s failed (status=%d)", method, path, response.status_code)
            raise UpstreamError("Cal.com API error", status_code=response.status_code, body=body)
        return response

    # -- record source ------------------------------------------------------

    def fetch_all(self) -> list[RecordValue]:
        """Return every booking visible to the API key, in upstream order.

        Raises
        ------
        UpstreamError
            If any page request fails or a page body carries no readable
            booking list; no partial result is returned.
        ConfigurationError
            If no API key is configured.
        """
        records: list[RecordValue] = []
        for page in range(self.max_pages):
            response = self._request(
                "GET",
                "/v2/bookings",
                params={"take": self.page_size, "skip": page * self.page_size},
            )
            data = _json_or_none(response)
            batch = _page_records(data)
            has_next = _has_next_page(data)
            if batch is None or (has_next and not batch):
                logger.warning("calcom: unreadable bookings page (page=%d)", page)
                raise UpstreamError("Cal.com API error", status_code=response.status_code, body=None)
            records.extend(batch)

            if has_next is False or (has_next is None and len(batch) < self.page_size):
                break
        else:
            logger.warning("calcom: stopped paging at max_pages=%d", self.max_pages)

        logger.info("calcom: fetched %d bookings", len(records))
        return records

    # -- mutations ----------------------------------------------------------

    def cancel(self, uid: str, reason: str | None = None) -> Any:
        """Cancel booking *uid*; returns the upstream JSON body."""
        response = self._request(
            "POST",
            f"/v2/bookings/{quote(str(uid), safe='')}/cancel",
            json={"cancellationReason": reason or DEFAULT_CANCEL_REASON},
        )
        logger.info("calcom: cancelled booking")
        return _json_or_none(response)

    def reschedule(self, uid: str, new_start: str, reason: str | None = None) -> Any:
        """Move booking *uid* to *new_start*; returns the upstream JSON body."""
        response = self._request(
            "POST",
            f"/v2/bookings/{quote(str(uid), safe='')}/reschedule",
            json={"start": new_start, "reschedulingReason": reason or DEFAULT_RESCHEDULE_REASON},
        )
        logger.info("calcom: rescheduled booking")
        return _json_or_none(response)
