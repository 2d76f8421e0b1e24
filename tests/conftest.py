"""
Pytest configuration and fixtures for Calendar Link tests.

Provides a file-backed SQLite database per test, the token protector and
repositories built on it, and sample linked accounts.
"""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from src.auth.account_repository import AccountRepository
from src.auth.accounts import LinkedAccount
from src.auth.state_store import StateTokenStore
from src.auth.token_protector import TokenProtector
from src.database import create_engine_for_url, create_session_factory, init_db

TEST_MASTER_KEY = "test-master-key-not-for-production"


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """
    Create a fresh SQLite database for each test.

    A real file is used instead of :memory: so that every connection in
    the pool sees the same database.
    """
    engine = create_engine_for_url(f"sqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Async session factory bound to the test database."""
    return create_session_factory(db_engine)


@pytest.fixture
def protector() -> TokenProtector:
    """Token protector with a fixed test key."""
    return TokenProtector(TEST_MASTER_KEY)


@pytest.fixture
def account_repository(session_factory, protector) -> AccountRepository:
    """Account repository on the test database."""
    return AccountRepository(session_factory, protector)


@pytest.fixture
def state_store(session_factory) -> StateTokenStore:
    """State token store on the test database with the default TTL."""
    return StateTokenStore(session_factory)


@pytest.fixture
def now() -> datetime:
    """Fixed reference time."""
    return datetime(2026, 9, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def linked_account(now) -> LinkedAccount:
    """A linked account with a cached access token valid for an hour."""
    return LinkedAccount(
        external_id="google-123",
        email="alice@example.edu",
        refresh_token="refresh-abc",
        access_token="access-xyz",
        access_token_expiry=now + timedelta(hours=1),
        scopes=("openid", "https://www.googleapis.com/auth/calendar.events"),
    )


@pytest.fixture
def refresh_only_account() -> LinkedAccount:
    """A linked account holding only a refresh token."""
    return LinkedAccount(
        external_id="google-123",
        email="alice@example.edu",
        refresh_token="refresh-abc",
    )
