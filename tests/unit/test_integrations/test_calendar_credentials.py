"""Tests for Google Calendar credential construction."""

import pytest

from src.integrations.google_calendar.auth import (
    CALENDAR_EVENTS_SCOPE,
    get_oauth_credentials,
)
from src.integrations.google_calendar.exceptions import GoogleCalendarAuthError


class TestGetOAuthCredentials:
    """Tests for get_oauth_credentials."""

    def test_bearer_token(self):
        """Credentials should carry the access token and default scope."""
        credentials = get_oauth_credentials("access-1")

        assert credentials.token == "access-1"
        assert credentials.scopes == [CALENDAR_EVENTS_SCOPE]
        assert credentials.refresh_token is None

    def test_custom_scopes(self):
        """Given scopes should be kept."""
        scopes = ["https://www.googleapis.com/auth/calendar"]
        assert get_oauth_credentials("access-1", scopes).scopes == scopes

    def test_empty_token(self):
        """An empty token should be rejected."""
        with pytest.raises(GoogleCalendarAuthError):
            get_oauth_credentials("")
