"""
Custom exceptions for Google Calendar operations.

Provides structured error handling with retryable flags. All of them are
per-item provider call failures as far as export is concerned.
"""

from src.exceptions import ProviderCallError


class GoogleCalendarError(ProviderCallError):
    """Base exception for Google Calendar operations."""

    retryable: bool = False


class GoogleCalendarAuthError(GoogleCalendarError):
    """
    Authentication or authorization failure.

    Causes:
    - Invalid, revoked or garbled access token
    - Insufficient scopes
    """

    retryable = False


class GoogleCalendarQuotaError(GoogleCalendarError):
    """
    API quota exceeded.

    Retryable after backoff.
    """

    retryable = True


class GoogleCalendarNotFoundError(GoogleCalendarError):
    """
    Event or calendar not found.

    Causes:
    - Event was deleted in Google Calendar
    - Calendar ID is invalid
    """

    retryable = False


class GoogleCalendarConflictError(GoogleCalendarError):
    """
    Event write conflict (409 / 412).

    Retryable after re-fetching the event.
    """

    retryable = True


class GoogleCalendarRateLimitError(GoogleCalendarError):
    """
    Rate limit hit (429 response).

    Retryable after exponential backoff.
    """

    retryable = True


class GoogleCalendarValidationError(GoogleCalendarError):
    """
    Google rejected the event body (400).

    Causes:
    - Invalid datetime range
    - Invalid colorId
    """

    retryable = False
