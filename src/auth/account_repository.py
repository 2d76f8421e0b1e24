"""
Persistence for local users and their linked calendar accounts.

This is the encryption boundary: every read of a linked account passes
its tokens through TokenProtector.unprotect, every write through
TokenProtector.protect. Nothing outside this module sees ciphertext.
"""

import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.auth.accounts import LinkedAccount, LocalUser
from src.auth.token_protector import TokenProtector
from src.exceptions import StorageConflictError
from src.models.users import User

logger = logging.getLogger(__name__)


class AccountRepository:
    """
    Stores LocalUser rows with an embedded, encrypted LinkedAccount.

    Each method runs in its own session and transaction. Username
    uniqueness is left to the database's unique index.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        protector: TokenProtector,
    ):
        self._session_factory = session_factory
        self._protector = protector

    # ------------------------------------------------------------------
    # Encryption boundary
    # ------------------------------------------------------------------

    def _to_domain(self, row: User) -> LocalUser:
        """Convert a stored row to a LocalUser with plaintext tokens."""
        account = None
        if row.linked_account is not None:
            document = dict(row.linked_account)
            document["refreshToken"] = self._protector.unprotect(document.get("refreshToken"))
            document["accessToken"] = self._protector.unprotect(document.get("accessToken"))
            account = LinkedAccount.from_document(document)
        return LocalUser(username=row.username, email=row.email, linked_account=account)

    def _to_document(self, account: LinkedAccount) -> dict:
        """Convert a LinkedAccount to its stored form with protected tokens."""
        document = account.to_document()
        document["refreshToken"] = self._protector.protect(account.refresh_token)
        document["accessToken"] = self._protector.protect(account.access_token)
        return document

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def create_user(self, username: str, email: Optional[str] = None) -> LocalUser:
        """
        Insert a new user.

        Raises:
            StorageConflictError: If the username is already taken
        """
        async with self._session_factory() as session:
            session.add(User(username=username, email=email or None))
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise StorageConflictError(
                    f"User '{username}' already exists",
                    original_error=e,
                )
        logger.info(f"Created user {username}")
        return LocalUser(username=username, email=email or None)

    async def upsert_user(self, username: str, email: Optional[str] = None) -> None:
        """
        Create or update a user by username.

        The email is only written when a non-empty value is supplied; an
        existing email is never cleared. If a concurrent request inserts
        the same username first, the write is applied as an update.

        Raises:
            StorageConflictError: If the insert conflicts and no row can be updated
        """
        values: dict = {"username": username}
        if email:
            values["email"] = email

        async with self._session_factory() as session:
            stmt = update(User).where(User.username == username).values(**values)
            result = await session.execute(stmt)
            if result.rowcount:
                await session.commit()
                return

            session.add(User(**values))
            try:
                await session.commit()
                logger.info(f"Created user {username}")
                return
            except IntegrityError as e:
                await session.rollback()
                logger.debug(f"Lost insert race for user {username}; updating instead")
                original_error = e

            result = await session.execute(stmt)
            if not result.rowcount:
                await session.rollback()
                raise StorageConflictError(
                    f"Could not upsert user '{username}'",
                    original_error=original_error,
                )
            await session.commit()

    async def get_by_username(self, username: str) -> Optional[LocalUser]:
        """Find a user by username, with linked-account tokens unprotected."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(User).where(User.username == username)
            )
            row = result.scalar_one_or_none()
            return self._to_domain(row) if row else None

    async def get_by_email(self, email: str) -> Optional[LocalUser]:
        """Find the first user with this email, with linked-account tokens unprotected."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(User).where(User.email == email).order_by(User.created_at).limit(1)
            )
            row = result.scalar_one_or_none()
            return self._to_domain(row) if row else None

    # ------------------------------------------------------------------
    # Linked accounts
    # ------------------------------------------------------------------

    async def upsert_linked_account(self, username: str, account: LinkedAccount) -> bool:
        """
        Replace the user's linked account with the given one.

        This is a full replace: callers pass the complete account state,
        including fields that should stay unchanged.

        Returns:
            True if the user exists and was updated, False otherwise
        """
        document = self._to_document(account)
        async with self._session_factory() as session:
            result = await session.execute(
                update(User)
                .where(User.username == username)
                .values(linked_account=document)
            )
            await session.commit()

        if not result.rowcount:
            logger.warning(f"Cannot link account: user {username} does not exist")
            return False
        logger.info(f"Stored linked account for user {username}")
        return True

    async def remove_linked_account(self, username: str) -> bool:
        """
        Remove the user's linked account in a single statement.

        Returns:
            True if the user exists, False otherwise
        """
        async with self._session_factory() as session:
            result = await session.execute(
                update(User)
                .where(User.username == username)
                .values(linked_account=None)
            )
            await session.commit()

        if result.rowcount:
            logger.info(f"Removed linked account for user {username}")
        return bool(result.rowcount)
