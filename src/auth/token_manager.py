"""
Access token lifecycle for linked accounts.

Hands out a usable access token, refreshing it only when the cached one
is missing or about to expire, and persists every refresh before the new
token is used.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from src.auth.account_repository import AccountRepository
from src.auth.accounts import LinkedAccount
from src.auth.google_oauth import GoogleOAuthFlow
from src.exceptions import NotLinkedError, ProviderAuthError

logger = logging.getLogger(__name__)


class TokenLifecycleManager:
    """Caches, checks and refreshes access tokens."""

    def __init__(
        self,
        oauth: GoogleOAuthFlow,
        repository: AccountRepository,
        refresh_margin: timedelta = timedelta(seconds=60),
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._oauth = oauth
        self._repository = repository
        self._refresh_margin = refresh_margin
        self._clock = clock

    async def get_valid_access_token(
        self,
        username: str,
        account: LinkedAccount,
    ) -> tuple[str, LinkedAccount]:
        """
        Get a valid access token for a linked account.

        Args:
            username: Owner of the account (the refreshed state is stored under it)
            account: The user's current linked account

        Returns:
            Tuple of (access token, account as now stored)

        Raises:
            NotLinkedError: If the account has no refresh token
            ProviderAuthError: If Google rejects the refresh
        """
        if account.has_fresh_access_token(self._clock(), self._refresh_margin):
            return account.access_token, account

        if not account.refresh_token:
            raise NotLinkedError(f"User {username} has no refresh token")

        try:
            tokens = await self._oauth.refresh_token(account.refresh_token)
        except ProviderAuthError:
            logger.error(f"Failed to refresh access token for user {username}")
            raise

        if not tokens.access_token:
            raise ProviderAuthError(
                f"Google returned no access token when refreshing for user {username}"
            )

        updated = account.with_access_token(
            access_token=tokens.access_token,
            expiry=tokens.expiry,
            refresh_token=tokens.refresh_token,
        )
        await self._repository.upsert_linked_account(username, updated)

        logger.info(f"Refreshed access token for user {username}")
        return updated.access_token, updated
