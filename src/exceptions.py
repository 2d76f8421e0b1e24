"""
Error taxonomy for account linking and calendar export.

Fatal errors abort the whole operation; per-item errors are recorded
in the export summary instead of being raised to the caller.
"""

from typing import Optional


class CalendarLinkError(Exception):
    """Base exception for account linking and export."""

    retryable: bool = False

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class NotLinkedError(CalendarLinkError):
    """The user has no linked calendar account (or no refresh token)."""


class InvalidStateError(CalendarLinkError):
    """
    OAuth callback state failed validation.

    Causes:
    - State missing or unknown
    - State already consumed (replay)
    - State expired
    - State issued to a different session
    """


class ProviderAuthError(CalendarLinkError):
    """
    The provider rejected a code exchange or token refresh.

    Fatal for the whole operation: nothing can proceed without a usable
    access token.
    """


class OAuthDeniedError(ProviderAuthError):
    """The provider redirected back with an error instead of a code."""

    def __init__(self, error: str, error_description: Optional[str] = None):
        message = f"Authorization failed: {error}"
        if error_description:
            message = f"{message} ({error_description})"
        super().__init__(message)
        self.error = error
        self.error_description = error_description


class ProviderCallError(CalendarLinkError):
    """A provider call for a single item failed. Recorded, never fatal."""


class ItemValidationError(CalendarLinkError):
    """A calendar item is structurally invalid and was not sent."""


class StorageConflictError(CalendarLinkError):
    """A write violated the username uniqueness constraint."""
