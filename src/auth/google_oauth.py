"""
Google OAuth 2.0 client for calendar linking.

Implements the provider side of the authorization code flow:
1. Build authorization URL → user redirected to Google
2. User grants permission → Google redirects back with code + state
3. Exchange code for tokens → access_token + refresh_token
4. Look up the Google account id and email
5. Refresh access_token when stale using refresh_token

Every failure talking to the token or userinfo endpoints is reported as
ProviderAuthError.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import urlencode

import httpx

from src.exceptions import ProviderAuthError

logger = logging.getLogger(__name__)

# Google OAuth endpoints
GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

# Scopes requested when linking
CALENDAR_SCOPES = [
    "openid",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/calendar.events",
]


@dataclass
class OAuthTokens:
    """OAuth token response from Google."""

    access_token: str
    refresh_token: Optional[str]
    expires_in: int
    token_type: str
    scope: str
    issued_at: datetime

    @property
    def expiry(self) -> datetime:
        """Calculate token expiry time."""
        return self.issued_at + timedelta(seconds=self.expires_in)

    @property
    def scopes(self) -> tuple[str, ...]:
        """Granted scopes as an ordered tuple."""
        return tuple(self.scope.split())


@dataclass
class GoogleUserInfo:
    """Account identity from Google userinfo."""

    id: str
    email: str
    name: Optional[str] = None


class GoogleOAuthFlow:
    """
    Talks to Google's OAuth endpoints.

    Usage:
        flow = GoogleOAuthFlow(client_id, client_secret, redirect_uri)
        url = flow.get_authorization_url(state)
        tokens = await flow.exchange_code(code)
        user_info = await flow.get_user_info(tokens.access_token)
        new_tokens = await flow.refresh_token(tokens.refresh_token)
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        scopes: Optional[list[str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        """
        Initialize the flow.

        Args:
            client_id: OAuth client ID
            client_secret: OAuth client secret
            redirect_uri: Registered redirect URI
            scopes: Scopes to request (defaults to CALENDAR_SCOPES)
            transport: Optional httpx transport (tests pass a MockTransport)
            timeout: Per-request timeout in seconds
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.scopes = list(scopes or CALENDAR_SCOPES)
        self._transport = transport
        self._timeout = timeout

        if not self.client_id or not self.client_secret:
            logger.warning(
                "Google OAuth not configured. Set GOOGLE_OAUTH_CLIENT_ID and "
                "GOOGLE_OAUTH_CLIENT_SECRET in environment."
            )

    @classmethod
    def from_settings(cls, settings) -> "GoogleOAuthFlow":
        """Build a flow from application settings."""
        return cls(
            client_id=settings.google_oauth_client_id,
            client_secret=settings.google_oauth_client_secret,
            redirect_uri=settings.google_oauth_redirect_uri,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=self._timeout)

    def get_authorization_url(self, state: str) -> str:
        """
        Generate the Google OAuth authorization URL.

        Args:
            state: Single-use state token bound to the calling session

        Returns:
            URL to redirect the user to
        """
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "access_type": "offline",  # Get refresh token
            "prompt": "consent",  # Always show consent screen (ensures refresh token)
            "include_granted_scopes": "true",
            "state": state,
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def _post_token(self, data: dict, action: str) -> dict:
        """POST to the token endpoint and return the JSON body."""
        try:
            async with self._client() as client:
                response = await client.post(GOOGLE_TOKEN_URL, data=data)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            detail = _error_detail(e.response)
            logger.warning(f"Google rejected {action}: {e.response.status_code} {detail}")
            raise ProviderAuthError(
                f"Google rejected {action}: {detail}",
                original_error=e,
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Google {action} failed: {e}")
            raise ProviderAuthError(f"Google {action} failed: {e}", original_error=e)

    async def exchange_code(self, code: str) -> OAuthTokens:
        """
        Exchange authorization code for access and refresh tokens.

        Raises:
            ProviderAuthError: If the exchange fails
        """
        issued_at = datetime.now(timezone.utc)
        token_data = await self._post_token(
            {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": self.redirect_uri,
            },
            "authorization code exchange",
        )

        logger.info("Successfully exchanged authorization code for tokens")
        return _tokens_from_response(token_data, issued_at)

    async def refresh_token(self, refresh_token: str) -> OAuthTokens:
        """
        Obtain a new access token from a refresh token.

        The returned refresh_token is the rotated one when Google sends
        one, otherwise the one passed in.

        Raises:
            ProviderAuthError: If the refresh token is revoked or the call fails
        """
        issued_at = datetime.now(timezone.utc)
        token_data = await self._post_token(
            {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            },
            "token refresh",
        )

        logger.info("Successfully refreshed access token")
        tokens = _tokens_from_response(token_data, issued_at)
        if not tokens.refresh_token:
            tokens.refresh_token = refresh_token
        return tokens

    async def get_user_info(self, access_token: str) -> GoogleUserInfo:
        """
        Get the Google account id and email for an access token.

        Raises:
            ProviderAuthError: If the request fails
        """
        headers = {"Authorization": f"Bearer {access_token}"}

        try:
            async with self._client() as client:
                response = await client.get(GOOGLE_USERINFO_URL, headers=headers)
                response.raise_for_status()
                user_data = response.json()
            return GoogleUserInfo(
                id=str(user_data["id"]),
                email=user_data["email"],
                name=user_data.get("name"),
            )
        except httpx.HTTPStatusError as e:
            raise ProviderAuthError(
                f"Google userinfo request rejected: {e.response.status_code}",
                original_error=e,
            )
        except (httpx.HTTPError, ValueError, KeyError) as e:
            raise ProviderAuthError(f"Google userinfo request failed: {e}", original_error=e)


def _tokens_from_response(token_data: dict, issued_at: datetime) -> OAuthTokens:
    """Build OAuthTokens from a token endpoint response."""
    if not isinstance(token_data, dict) or not token_data.get("access_token"):
        raise ProviderAuthError("Malformed token response from Google: no access token")
    try:
        return OAuthTokens(
            access_token=token_data["access_token"],
            refresh_token=token_data.get("refresh_token"),
            expires_in=int(token_data["expires_in"]),
            token_type=token_data.get("token_type", "Bearer"),
            scope=token_data.get("scope", ""),
            issued_at=issued_at,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ProviderAuthError(f"Malformed token response from Google: {e}", original_error=e)


def _error_detail(response: httpx.Response) -> str:
    """Extract Google's error code from a failed token response."""
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or str(response.status_code)
    if not isinstance(body, dict):
        return str(response.status_code)
    error = body.get("error", "unknown_error")
    description = body.get("error_description")
    return f"{error} ({description})" if description else error
