"""Tests for the Google Calendar event gateway."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from src.integrations.base import CalendarItem
from src.integrations.google_calendar.adapter import EXTERNAL_KEY_PROPERTY
from src.integrations.google_calendar.exceptions import GoogleCalendarNotFoundError
from src.integrations.google_calendar.repository import GoogleCalendarRepository


@pytest.fixture
def item():
    return CalendarItem(
        external_key="course-meeting:42",
        title="Linear Algebra",
        subject="MATH 221",
        start=datetime(2026, 9, 7, 9, 0, tzinfo=timezone.utc),
        end=datetime(2026, 9, 7, 10, 15, tzinfo=timezone.utc),
    )


@pytest.fixture
def mock_client():
    """Create mock Google Calendar client."""
    return MagicMock()


@pytest.fixture
async def repository(mock_client):
    """Create repository with a mocked client."""
    repo = GoogleCalendarRepository(mock_client, calendar_id="cal-123")
    yield repo
    await repo.close()


class TestFindEventId:
    """Tests for find_event_id."""

    @pytest.mark.asyncio
    async def test_found(self, repository, mock_client):
        """Should return the first matching event's id."""
        mock_client.find_events_by_private_property.return_value = [{"id": "event-1"}]

        assert await repository.find_event_id("course-meeting:42") == "event-1"
        mock_client.find_events_by_private_property.assert_called_once_with(
            "cal-123", EXTERNAL_KEY_PROPERTY, "course-meeting:42"
        )

    @pytest.mark.asyncio
    async def test_not_found(self, repository, mock_client):
        """Should return None when no event carries the key."""
        mock_client.find_events_by_private_property.return_value = []

        assert await repository.find_event_id("course-meeting:42") is None


class TestCreateAndUpdate:
    """Tests for create_event and update_event."""

    @pytest.mark.asyncio
    async def test_create_event(self, repository, mock_client, item):
        """Should insert the adapted body and return the new id."""
        mock_client.insert_event.return_value = {"id": "new-1"}

        assert await repository.create_event(item) == "new-1"

        calendar_id, body = mock_client.insert_event.call_args.args
        assert calendar_id == "cal-123"
        assert body["summary"] == "Linear Algebra"
        assert body["extendedProperties"]["private"][EXTERNAL_KEY_PROPERTY] == "course-meeting:42"

    @pytest.mark.asyncio
    async def test_update_event(self, repository, mock_client, item):
        """Should patch the existing event with the adapted body."""
        mock_client.patch_event.return_value = {"id": "event-1"}

        assert await repository.update_event("event-1", item) == "event-1"

        calendar_id, event_id, body = mock_client.patch_event.call_args.args
        assert (calendar_id, event_id) == ("cal-123", "event-1")
        assert body["summary"] == "Linear Algebra"

    @pytest.mark.asyncio
    async def test_client_errors_propagate(self, repository, mock_client, item):
        """Client errors should reach the caller unchanged."""
        mock_client.patch_event.side_effect = GoogleCalendarNotFoundError("gone")

        with pytest.raises(GoogleCalendarNotFoundError):
            await repository.update_event("event-1", item)


class TestForAccessToken:
    """Tests for building a repository from an access token."""

    @pytest.mark.asyncio
    async def test_builds_client_with_bearer_credentials(self):
        """Should authenticate the client with the given access token."""
        with patch(
            "src.integrations.google_calendar.repository.GoogleCalendarClient"
        ) as mock_client_class:
            repo = GoogleCalendarRepository.for_access_token(
                "access-1", calendar_id="primary", max_workers=2
            )

        credentials = mock_client_class.call_args.args[0]
        assert credentials.token == "access-1"
        assert repo.calendar_id == "primary"
        await repo.close()

    @pytest.mark.asyncio
    async def test_context_manager_closes_executor(self, mock_client):
        """Leaving the context should shut down the thread pool."""
        async with GoogleCalendarRepository(mock_client) as repo:
            pass

        assert repo._executor is None
