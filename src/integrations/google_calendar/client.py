"""
Google Calendar API client wrapper with retry and error handling.

Provides the event operations export needs over the Google Calendar API v3.
"""

import logging
import threading

from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build, Resource
from googleapiclient.errors import HttpError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception,
)

from src.integrations.google_calendar.exceptions import (
    GoogleCalendarError,
    GoogleCalendarAuthError,
    GoogleCalendarQuotaError,
    GoogleCalendarNotFoundError,
    GoogleCalendarConflictError,
    GoogleCalendarRateLimitError,
    GoogleCalendarValidationError,
)

logger = logging.getLogger(__name__)


def _is_retryable_error(exception: BaseException) -> bool:
    """Check if an exception should trigger a retry."""
    if isinstance(exception, GoogleCalendarError):
        if exception.retryable:
            return True
        # Mapped errors keep the HttpError that caused them
        exception = exception.original_error
    if isinstance(exception, HttpError):
        return exception.resp.status in (429, 500, 503)
    return False


def _handle_http_error(error: HttpError) -> None:
    """Convert HttpError to appropriate GoogleCalendarError."""
    status = error.resp.status
    message = str(error)

    if status == 400:
        raise GoogleCalendarValidationError(
            "Google rejected the event data",
            original_error=error,
        )
    elif status == 401:
        raise GoogleCalendarAuthError(
            "Authentication failed - access token may be invalid or expired",
            original_error=error,
        )
    elif status == 403:
        # Google reports quota exhaustion as 403 too
        if "quota" in message.lower() or "rate limit" in message.lower():
            raise GoogleCalendarQuotaError(
                "API quota exceeded",
                original_error=error,
            )
        raise GoogleCalendarAuthError(
            "Access denied - check granted calendar scopes",
            original_error=error,
        )
    elif status == 404:
        raise GoogleCalendarNotFoundError(
            "Event or calendar not found",
            original_error=error,
        )
    elif status in (409, 412):
        # 412: etag precondition failed
        raise GoogleCalendarConflictError(
            "Event was modified by another process",
            original_error=error,
        )
    elif status == 429:
        raise GoogleCalendarRateLimitError(
            "Rate limit exceeded - too many requests",
            original_error=error,
        )
    else:
        raise GoogleCalendarError(
            f"Google Calendar API error ({status}): {message}",
            original_error=error,
        )


# Up to 3 attempts, backing off 1s to 10s between them
_retry_policy = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception(_is_retryable_error),
    reraise=True,
)


class GoogleCalendarClient:
    """
    Wrapper around Google Calendar API v3.

    Provides:
    - Automatic retry with exponential backoff
    - Consistent error handling
    - One API service object per thread (httplib2 is not thread-safe)
    """

    def __init__(self, credentials: Credentials):
        """
        Initialize the client.

        Args:
            credentials: Google OAuth2 credentials
        """
        self._credentials = credentials
        self._local = threading.local()

    @property
    def service(self) -> Resource:
        """Get the calling thread's Google API service."""
        service = getattr(self._local, "service", None)
        if service is None:
            service = build(
                "calendar",
                "v3",
                credentials=self._credentials,
                cache_discovery=False,
            )
            self._local.service = service
        return service

    @_retry_policy
    def find_events_by_private_property(
        self,
        calendar_id: str,
        name: str,
        value: str,
        max_results: int = 1,
    ) -> list[dict]:
        """
        List events carrying a private extended property value.

        Args:
            calendar_id: Calendar to query
            name: Private extended property name
            value: Property value to match
            max_results: Maximum events to return

        Returns:
            Matching events (not including cancelled ones)
        """
        try:
            response = self.service.events().list(
                calendarId=calendar_id,
                privateExtendedProperty=f"{name}={value}",
                showDeleted=False,
                maxResults=max_results,
            ).execute()
            return response.get("items", [])
        except HttpError as e:
            _handle_http_error(e)
        # Bearer-only credentials cannot refresh after a 401
        except RefreshError as e:
            raise GoogleCalendarAuthError(
                "Access token was rejected and cannot be refreshed here",
                original_error=e,
            )

    @_retry_policy
    def insert_event(self, calendar_id: str, body: dict) -> dict:
        """
        Create a new event.

        Args:
            calendar_id: Calendar to create event in
            body: Event data in Google Calendar format

        Returns:
            Created event with ID
        """
        try:
            result = self.service.events().insert(
                calendarId=calendar_id,
                body=body,
            ).execute()
            logger.debug(f"Created event {result.get('id')} in {calendar_id}")
            return result
        except HttpError as e:
            _handle_http_error(e)
        # Bearer-only credentials cannot refresh after a 401
        except RefreshError as e:
            raise GoogleCalendarAuthError(
                "Access token was rejected and cannot be refreshed here",
                original_error=e,
            )

    @_retry_policy
    def patch_event(self, calendar_id: str, event_id: str, body: dict) -> dict:
        """
        Patch an existing event (partial update).

        Args:
            calendar_id: Calendar containing the event
            event_id: Event to update
            body: Fields to update

        Returns:
            Updated event
        """
        try:
            result = self.service.events().patch(
                calendarId=calendar_id,
                eventId=event_id,
                body=body,
            ).execute()
            logger.debug(f"Patched event {event_id} in {calendar_id}")
            return result
        except HttpError as e:
            _handle_http_error(e)
        # Bearer-only credentials cannot refresh after a 401
        except RefreshError as e:
            raise GoogleCalendarAuthError(
                "Access token was rejected and cannot be refreshed here",
                original_error=e,
            )

