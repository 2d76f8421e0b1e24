"""
Credentials for calling the Google Calendar API on behalf of a linked user.

Access tokens are refreshed by TokenLifecycleManager before export starts,
so the credentials built here carry a bearer token only.
"""

from typing import Optional

from google.oauth2.credentials import Credentials

from src.integrations.google_calendar.exceptions import GoogleCalendarAuthError

# Scope needed for creating and patching events
CALENDAR_EVENTS_SCOPE = "https://www.googleapis.com/auth/calendar.events"


def get_oauth_credentials(
    access_token: str,
    scopes: Optional[list[str]] = None,
) -> Credentials:
    """
    Create credentials from an OAuth access token.

    Args:
        access_token: Valid access token
        scopes: OAuth scopes granted to the token (optional)

    Returns:
        Google credentials object

    Raises:
        GoogleCalendarAuthError: If no access token is given
    """
    if not access_token:
        raise GoogleCalendarAuthError("An access token is required")

    return Credentials(
        token=access_token,
        scopes=scopes or [CALENDAR_EVENTS_SCOPE],
    )
