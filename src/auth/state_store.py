"""
Single-use OAuth state token storage.

A state token binds an OAuth callback to the session that started the
linking attempt. Tokens move from 'initiated' to exactly one terminal
status (consumed, expired or rejected); the move is a conditional
UPDATE, so two concurrent callbacks can never both consume a token.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.auth.accounts import as_utc
from src.exceptions import InvalidStateError
from src.models.oauth_states import OAuthState, StateStatus

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class IssuedState:
    """A freshly issued state token."""

    state: str
    username: str
    expires_at: datetime


class StateTokenStore:
    """
    Database-backed state token store.

    Usage:
        issued = await store.issue(session_id, username)
        # ... provider redirect round-trip ...
        username = await store.consume(issued.state, session_id)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        ttl: timedelta = timedelta(minutes=10),
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize the store.

        Args:
            session_factory: Async session factory
            ttl: How long an issued state is accepted
            clock: Source of the current time (UTC)
        """
        self._session_factory = session_factory
        self._ttl = ttl
        self._clock = clock

    async def issue(self, session_id: str, username: str) -> IssuedState:
        """Generate and store a new state token for a session."""
        state = secrets.token_urlsafe(32)
        expires_at = self._clock() + self._ttl

        async with self._session_factory() as session:
            session.add(
                OAuthState(
                    state=state,
                    session_id=session_id,
                    username=username,
                    status=StateStatus.INITIATED.value,
                    expires_at=expires_at,
                )
            )
            await session.commit()

        logger.debug(f"Issued OAuth state for user {username}")
        return IssuedState(state=state, username=username, expires_at=expires_at)

    async def _transition(self, session: AsyncSession, state: str, status: StateStatus) -> bool:
        """Move a state out of 'initiated'. Returns False if it already left."""
        result = await session.execute(
            update(OAuthState)
            .where(
                OAuthState.state == state,
                OAuthState.status == StateStatus.INITIATED.value,
            )
            .values(status=status.value, consumed_at=self._clock())
        )
        await session.commit()
        return result.rowcount == 1

    async def consume(self, state: str, session_id: str) -> str:
        """
        Validate and consume a state token.

        Args:
            state: State value returned by the provider redirect
            session_id: Session handling the callback

        Returns:
            Username the state was issued for

        Raises:
            InvalidStateError: If the state is unknown, already used,
                expired, or was issued to another session
        """
        if not state:
            raise InvalidStateError("Missing state token")

        async with self._session_factory() as session:
            result = await session.execute(
                select(OAuthState).where(OAuthState.state == state)
            )
            record = result.scalar_one_or_none()

            if record is None:
                logger.warning("OAuth callback with unknown state token")
                raise InvalidStateError("Unknown state token. Please restart the connect flow.")

            if record.status != StateStatus.INITIATED.value:
                logger.warning(f"OAuth state replay for user {record.username} (status={record.status})")
                raise InvalidStateError("State token has already been used.")

            username = record.username
            expires_at = as_utc(record.expires_at)
            bound_session = record.session_id

            if expires_at <= self._clock():
                await self._transition(session, state, StateStatus.EXPIRED)
                logger.warning(f"Expired OAuth state for user {username}")
                raise InvalidStateError("State token has expired. Please restart the connect flow.")

            if not secrets.compare_digest(bound_session, session_id):
                await self._transition(session, state, StateStatus.REJECTED)
                logger.warning(f"OAuth state for user {username} presented by another session")
                raise InvalidStateError("State token does not belong to this session.")

            if not await self._transition(session, state, StateStatus.CONSUMED):
                logger.warning(f"Concurrent OAuth callback lost the race for user {username}")
                raise InvalidStateError("State token has already been used.")

        logger.info(f"Consumed OAuth state for user {username}")
        return username

    async def status_of(self, state: str) -> Optional[StateStatus]:
        """Look up the current status of a state token."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(OAuthState.status).where(OAuthState.state == state)
            )
            value = result.scalar_one_or_none()
        return StateStatus(value) if value else None

    async def purge_expired(self, older_than: timedelta = timedelta(days=1)) -> int:
        """
        Delete state rows whose expiry is older than the given age.

        Returns:
            Number of rows deleted
        """
        cutoff = self._clock() - older_than
        async with self._session_factory() as session:
            result = await session.execute(
                delete(OAuthState).where(OAuthState.expires_at < cutoff)
            )
            await session.commit()
        if result.rowcount:
            logger.info(f"Purged {result.rowcount} stale OAuth states")
        return result.rowcount
