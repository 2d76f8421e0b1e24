"""
Google account linking: status, connect and callback.

Linking attempt lifecycle:
1. connect() issues a state token bound to the session and returns the
   authorization URL
2. Google redirects back with code + state (or an error)
3. callback() consumes the state, exchanges the code and stores the
   encrypted LinkedAccount
"""

import logging
from dataclasses import dataclass
from typing import Optional

from src.auth.account_repository import AccountRepository
from src.auth.accounts import LinkedAccount
from src.auth.google_oauth import GoogleOAuthFlow
from src.auth.state_store import StateTokenStore
from src.exceptions import InvalidStateError, OAuthDeniedError, ProviderAuthError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionStatus:
    """Whether a user has a usable linked account."""

    is_connected: bool
    email: Optional[str] = None


@dataclass(frozen=True)
class ConnectResult:
    """Authorization URL plus the state token embedded in it."""

    url: str
    state_token: str


class GoogleConnectFlow:
    """Orchestrates linking a local user to a Google account."""

    def __init__(
        self,
        oauth: GoogleOAuthFlow,
        repository: AccountRepository,
        states: StateTokenStore,
    ):
        self._oauth = oauth
        self._repository = repository
        self._states = states

    async def get_status(self, username: str) -> ConnectionStatus:
        """Report connection status; a refresh token alone means connected."""
        user = await self._repository.get_by_username(username)
        account = user.linked_account if user else None
        if account is None or not account.is_connected:
            return ConnectionStatus(is_connected=False)
        return ConnectionStatus(is_connected=True, email=account.email)

    async def connect(
        self,
        session_id: str,
        username: str,
        email: Optional[str] = None,
    ) -> ConnectResult:
        """
        Start a linking attempt.

        Args:
            session_id: Session the callback must come from
            username: User to link
            email: User email from the identity system, stored if present

        Returns:
            Authorization URL and its state token
        """
        await self._repository.upsert_user(username, email)
        await self._states.purge_expired()

        issued = await self._states.issue(session_id, username)
        url = self._oauth.get_authorization_url(issued.state)

        logger.info(f"Generated OAuth URL for user {username}")
        return ConnectResult(url=url, state_token=issued.state)

    async def callback(
        self,
        session_id: str,
        code: Optional[str] = None,
        state: Optional[str] = None,
        error: Optional[str] = None,
        error_description: Optional[str] = None,
    ) -> LinkedAccount:
        """
        Complete a linking attempt from the provider redirect.

        Returns:
            The stored LinkedAccount

        Raises:
            OAuthDeniedError: If Google redirected with an error
            InvalidStateError: If the state is missing, unknown, replayed,
                expired or bound to another session
            ProviderAuthError: If the code exchange or user lookup fails
        """
        if error:
            logger.warning(f"OAuth error from Google: {error}")
            raise OAuthDeniedError(error, error_description)

        if not code or not state:
            raise InvalidStateError("Missing code or state in OAuth callback")

        # Single use: the state is spent before any network call
        username = await self._states.consume(state, session_id)

        tokens = await self._oauth.exchange_code(code)
        user_info = await self._oauth.get_user_info(tokens.access_token)

        refresh_token = tokens.refresh_token
        if not refresh_token:
            refresh_token = await self._existing_refresh_token(username, user_info.id)
        if not refresh_token:
            raise ProviderAuthError(
                "Google did not return a refresh token. "
                "Remove the app's access in your Google account and connect again."
            )

        account = LinkedAccount(
            external_id=user_info.id,
            email=user_info.email,
            refresh_token=refresh_token,
            access_token=tokens.access_token,
            access_token_expiry=tokens.expiry,
            scopes=tokens.scopes or tuple(self._oauth.scopes),
        )

        await self._repository.upsert_user(username)
        await self._repository.upsert_linked_account(username, account)

        logger.info(f"Linked Google account {user_info.email} to user {username}")
        return account

    async def _existing_refresh_token(self, username: str, external_id: str) -> Optional[str]:
        """Reuse the stored refresh token when re-linking the same Google account."""
        user = await self._repository.get_by_username(username)
        account = user.linked_account if user else None
        if account and account.external_id == external_id:
            return account.refresh_token
        return None

    async def disconnect(self, username: str) -> bool:
        """Unlink the user's Google account."""
        removed = await self._repository.remove_linked_account(username)
        if removed:
            logger.info(f"User {username} disconnected Google Calendar")
        return removed
