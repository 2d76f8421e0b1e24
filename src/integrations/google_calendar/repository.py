"""
Google Calendar event gateway.

Implements CalendarEventGateway using the Google Calendar API.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Optional

from src.integrations.base import CalendarEventGateway, CalendarItem
from src.integrations.google_calendar.adapter import (
    EXTERNAL_KEY_PROPERTY,
    GoogleCalendarAdapter,
)
from src.integrations.google_calendar.auth import get_oauth_credentials
from src.integrations.google_calendar.client import GoogleCalendarClient

logger = logging.getLogger(__name__)


class GoogleCalendarRepository(CalendarEventGateway):
    """
    CalendarEventGateway implementation using Google Calendar API.

    Acts for one linked user on one calendar. The Google API client is
    synchronous, so we run operations in a thread pool for async
    compatibility.
    """

    def __init__(
        self,
        client: GoogleCalendarClient,
        calendar_id: str = "primary",
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        """
        Initialize the repository.

        Args:
            client: Authenticated Google Calendar client
            calendar_id: Calendar events are written to
            executor: Thread pool for running sync API calls (creates default if None)
        """
        self._client = client
        self._calendar_id = calendar_id
        self._executor = executor or ThreadPoolExecutor(max_workers=4)
        self._adapter = GoogleCalendarAdapter()

    @classmethod
    def for_access_token(
        cls,
        access_token: str,
        calendar_id: str = "primary",
        max_workers: int = 4,
    ) -> "GoogleCalendarRepository":
        """Create a repository acting with a user's access token."""
        client = GoogleCalendarClient(get_oauth_credentials(access_token))
        return cls(
            client,
            calendar_id=calendar_id,
            executor=ThreadPoolExecutor(max_workers=max_workers),
        )

    @property
    def calendar_id(self) -> str:
        return self._calendar_id

    async def _run_in_executor(self, func, *args, **kwargs):
        """Run a synchronous function in the thread pool."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor,
            partial(func, *args, **kwargs),
        )

    async def find_event_id(self, external_key: str) -> Optional[str]:
        """
        Find the event previously exported for an external key.

        Args:
            external_key: Item's external key

        Returns:
            Google event ID, or None if no event carries the key
        """
        events = await self._run_in_executor(
            self._client.find_events_by_private_property,
            self._calendar_id,
            EXTERNAL_KEY_PROPERTY,
            external_key,
        )
        if not events:
            return None
        return events[0]["id"]

    async def create_event(self, item: CalendarItem) -> str:
        """
        Create a Google event for an item.

        Returns:
            ID of the created event
        """
        body = self._adapter.to_google_event(item)
        created = await self._run_in_executor(
            self._client.insert_event,
            self._calendar_id,
            body,
        )
        logger.info(f"Created Google event {created['id']} for {item.external_key}")
        return created["id"]

    async def update_event(self, event_id: str, item: CalendarItem) -> str:
        """
        Overwrite an existing Google event with the item's fields.

        Returns:
            ID of the updated event
        """
        body = self._adapter.to_google_event(item)
        updated = await self._run_in_executor(
            self._client.patch_event,
            self._calendar_id,
            event_id,
            body,
        )
        logger.info(f"Updated Google event {event_id} for {item.external_key}")
        return updated.get("id", event_id)

    async def close(self):
        """Clean up resources."""
        if self._executor:
            self._executor.shutdown(wait=False)
            self._executor = None

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
