"""Tests for Google Calendar API client."""

import threading
from unittest.mock import MagicMock, patch

import pytest
from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError
from tenacity import wait_none

from src.integrations.google_calendar.client import (
    GoogleCalendarClient,
    _handle_http_error,
    _is_retryable_error,
)
from src.integrations.google_calendar.exceptions import (
    GoogleCalendarAuthError,
    GoogleCalendarConflictError,
    GoogleCalendarError,
    GoogleCalendarNotFoundError,
    GoogleCalendarQuotaError,
    GoogleCalendarRateLimitError,
    GoogleCalendarValidationError,
)


def make_http_error(status: int, message: str = "Error") -> HttpError:
    """Create a mock HttpError for testing."""
    resp = MagicMock()
    resp.status = status
    return HttpError(resp=resp, content=message.encode())


class TestIsRetryableError:
    """Tests for retry decision logic."""

    def test_retryable_google_calendar_error(self):
        """Should return True for retryable GoogleCalendarError."""
        assert _is_retryable_error(GoogleCalendarQuotaError("Quota exceeded")) is True

    def test_non_retryable_google_calendar_error(self):
        """Should return False for non-retryable GoogleCalendarError."""
        assert _is_retryable_error(GoogleCalendarAuthError("Auth failed")) is False

    def test_retryable_http_status_codes(self):
        """Should return True for 429, 500, 503 HTTP errors."""
        for status in [429, 500, 503]:
            assert _is_retryable_error(make_http_error(status)) is True

    def test_non_retryable_http_status_codes(self):
        """Should return False for other HTTP errors."""
        for status in [400, 401, 403, 404, 409]:
            assert _is_retryable_error(make_http_error(status)) is False

    def test_mapped_server_error_retryable(self):
        """Mapped 5xx errors should stay retryable through original_error."""
        error = GoogleCalendarError("Server error", original_error=make_http_error(503))
        assert _is_retryable_error(error) is True

    def test_other_exceptions(self):
        """Should return False for non-HTTP exceptions."""
        assert _is_retryable_error(ValueError("test")) is False


class TestHandleHttpError:
    """Tests for HTTP error to exception mapping."""

    def test_400_validation_error(self):
        """Should raise GoogleCalendarValidationError for 400."""
        with pytest.raises(GoogleCalendarValidationError):
            _handle_http_error(make_http_error(400))

    def test_401_auth_error(self):
        """Should raise GoogleCalendarAuthError for 401."""
        with pytest.raises(GoogleCalendarAuthError) as exc_info:
            _handle_http_error(make_http_error(401))
        assert "access token may be invalid or expired" in str(exc_info.value)

    def test_403_quota_error(self):
        """Should raise GoogleCalendarQuotaError for 403 with quota message."""
        with pytest.raises(GoogleCalendarQuotaError):
            _handle_http_error(make_http_error(403, "quota exceeded"))

    def test_403_auth_error(self):
        """Should raise GoogleCalendarAuthError for 403 without quota/rate limit."""
        with pytest.raises(GoogleCalendarAuthError) as exc_info:
            _handle_http_error(make_http_error(403, "Access denied"))
        assert "scopes" in str(exc_info.value)

    def test_404_not_found(self):
        """Should raise GoogleCalendarNotFoundError for 404."""
        with pytest.raises(GoogleCalendarNotFoundError):
            _handle_http_error(make_http_error(404))

    def test_409_and_412_conflict(self):
        """Should raise GoogleCalendarConflictError for 409 and 412."""
        for status in (409, 412):
            with pytest.raises(GoogleCalendarConflictError):
                _handle_http_error(make_http_error(status))

    def test_429_rate_limit(self):
        """Should raise GoogleCalendarRateLimitError for 429."""
        with pytest.raises(GoogleCalendarRateLimitError):
            _handle_http_error(make_http_error(429))

    def test_generic_error(self):
        """Should raise GoogleCalendarError for other status codes."""
        with pytest.raises(GoogleCalendarError) as exc_info:
            _handle_http_error(make_http_error(500, "Internal Server Error"))
        assert "500" in str(exc_info.value)


class TestGoogleCalendarClient:
    """Tests for GoogleCalendarClient operations."""

    @pytest.fixture
    def mock_build(self):
        """Patch discovery build to return a mock service."""
        with patch("src.integrations.google_calendar.client.build") as mock_build:
            mock_build.return_value = MagicMock()
            yield mock_build

    @pytest.fixture
    def mock_service(self, mock_build):
        return mock_build.return_value

    @pytest.fixture
    def client(self, mock_build):
        """Create client with mocked service."""
        return GoogleCalendarClient(MagicMock())

    def test_find_events_by_private_property(self, client, mock_service):
        """Should query by private extended property, excluding deleted events."""
        mock_service.events().list().execute.return_value = {"items": [{"id": "event-1"}]}

        result = client.find_events_by_private_property("primary", "externalKey", "course:1")

        assert result == [{"id": "event-1"}]
        mock_service.events().list.assert_called_with(
            calendarId="primary",
            privateExtendedProperty="externalKey=course:1",
            showDeleted=False,
            maxResults=1,
        )

    def test_find_events_none_found(self, client, mock_service):
        """Should return an empty list when nothing matches."""
        mock_service.events().list().execute.return_value = {}

        assert client.find_events_by_private_property("primary", "externalKey", "x") == []

    def test_insert_event(self, client, mock_service):
        """Should create new event."""
        body = {"summary": "New Event"}
        mock_service.events().insert().execute.return_value = {"id": "new-1", **body}

        result = client.insert_event("primary", body)

        assert result["id"] == "new-1"
        mock_service.events().insert.assert_called_with(calendarId="primary", body=body)

    def test_patch_event(self, client, mock_service):
        """Should patch event with partial update."""
        body = {"summary": "Patched"}
        mock_service.events().patch().execute.return_value = {"id": "event-1", **body}

        result = client.patch_event("primary", "event-1", body)

        assert result["summary"] == "Patched"
        mock_service.events().patch.assert_called_with(
            calendarId="primary", eventId="event-1", body=body
        )

    def test_non_retryable_error_mapped(self, client, mock_service):
        """A 404 should surface as GoogleCalendarNotFoundError after one call."""
        mock_service.events().patch().execute.side_effect = make_http_error(404)

        with pytest.raises(GoogleCalendarNotFoundError):
            client.patch_event("primary", "missing", {})
        assert mock_service.events().patch().execute.call_count == 1

    def test_refresh_error_is_auth_error(self, client, mock_service):
        """A rejected bearer token should surface as GoogleCalendarAuthError."""
        mock_service.events().insert().execute.side_effect = RefreshError("no refresh token")

        with pytest.raises(GoogleCalendarAuthError):
            client.insert_event("primary", {})

    def test_rate_limit_retried(self, client, mock_service):
        """A 429 should be retried and the later success returned."""
        mock_service.events().insert().execute.side_effect = [
            make_http_error(429),
            {"id": "new-1"},
        ]
        insert = GoogleCalendarClient.insert_event.retry_with(wait=wait_none())

        result = insert(client, "primary", {})

        assert result == {"id": "new-1"}

    def test_retries_give_up_after_three_attempts(self, client, mock_service):
        """Persistent 503s should fail after three attempts."""
        mock_service.events().insert().execute.side_effect = make_http_error(503)
        insert = GoogleCalendarClient.insert_event.retry_with(wait=wait_none())

        with pytest.raises(GoogleCalendarError):
            insert(client, "primary", {})
        assert mock_service.events().insert().execute.call_count == 3

    def test_service_per_thread(self, client, mock_build):
        """Each thread should build its own service object."""
        first = client.service
        second = client.service
        assert first is second
        assert mock_build.call_count == 1

        thread = threading.Thread(target=lambda: client.service)
        thread.start()
        thread.join()

        assert mock_build.call_count == 2
