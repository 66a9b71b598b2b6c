import pytest

from callmatch.core.settings import get_settings


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch):
    """Give every test a fresh Settings built from a known environment."""
    for name in ("LOG_LEVEL", "CALCOM_API_KEY", "CALCOM_BASE_URL", "REQUIRE_DOB", "AUTO_RESOLVE", "CALCOM_PAGE_SIZE", "CALCOM_MAX_PAGES"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CALCOM_API_KEY", "test-key")
    monkeypatch.setenv("CALCOM_BASE_URL", "https://cal.test")

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def emily_booking() -> dict:
    """A Cal.com v2 booking for Emily Smith with phone and DOB buried in fields."""
    return {
        "id": 101,
        "uid": "bk_emily",
        "title": "Cleaning between Dr. Lee and Emily R. Smith",
        "status": "accepted",
        "start": "2030-03-01T15:00:00.000Z",
        "end": "2030-03-01T15:30:00.000Z",
        "createdAt": "2026-09-01T10:00:00.000Z",
        "updatedAt": "2026-09-02T10:00:00.000Z",
        "attendees": [
            {"name": "Emily R. Smith", "email": "emily@example.com", "timeZone": "America/New_York"},
        ],
        "bookingFieldsResponses": {
            "name": "Emily R. Smith",
            "attendeePhoneNumber": "+13041111111",
            "date_of_birth": "2/24/88",
        },
        "metadata": {},
    }
