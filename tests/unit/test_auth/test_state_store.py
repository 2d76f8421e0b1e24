"""Tests for single-use OAuth state tokens."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from src.auth.state_store import StateTokenStore
from src.exceptions import InvalidStateError
from src.models.oauth_states import StateStatus


class FakeClock:
    """Settable clock for expiry tests."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, delta: timedelta) -> None:
        self.current += delta


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 9, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def clocked_store(session_factory, clock):
    return StateTokenStore(session_factory, ttl=timedelta(minutes=10), clock=clock)


class TestIssue:
    """Tests for issuing state tokens."""

    @pytest.mark.asyncio
    async def test_issue_returns_random_state(self, state_store):
        """Each issued state should be unique and unguessable in length."""
        first = await state_store.issue("session-1", "alice")
        second = await state_store.issue("session-1", "alice")

        assert first.state != second.state
        assert len(first.state) >= 32
        assert first.username == "alice"

    @pytest.mark.asyncio
    async def test_issued_state_is_initiated(self, state_store):
        """A new state should be in 'initiated' status."""
        issued = await state_store.issue("session-1", "alice")
        assert await state_store.status_of(issued.state) == StateStatus.INITIATED

    @pytest.mark.asyncio
    async def test_expiry_uses_ttl(self, clocked_store, clock):
        """expires_at should be issue time plus TTL."""
        issued = await clocked_store.issue("session-1", "alice")
        assert issued.expires_at == clock() + timedelta(minutes=10)


class TestConsume:
    """Tests for consuming state tokens."""

    @pytest.mark.asyncio
    async def test_consume_returns_username(self, state_store):
        """A valid state should resolve to its user and become consumed."""
        issued = await state_store.issue("session-1", "alice")

        assert await state_store.consume(issued.state, "session-1") == "alice"
        assert await state_store.status_of(issued.state) == StateStatus.CONSUMED

    @pytest.mark.asyncio
    async def test_replay_rejected(self, state_store):
        """A consumed state should be rejected by a second callback."""
        issued = await state_store.issue("session-1", "alice")
        await state_store.consume(issued.state, "session-1")

        with pytest.raises(InvalidStateError) as exc_info:
            await state_store.consume(issued.state, "session-1")
        assert "already been used" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_unknown_state_rejected(self, state_store):
        """A state never issued should be rejected."""
        with pytest.raises(InvalidStateError):
            await state_store.consume("forged-state", "session-1")

    @pytest.mark.asyncio
    async def test_missing_state_rejected(self, state_store):
        """An empty state should be rejected."""
        with pytest.raises(InvalidStateError):
            await state_store.consume("", "session-1")

    @pytest.mark.asyncio
    async def test_other_session_rejected_and_burned(self, state_store):
        """A state presented by another session should be rejected for good."""
        issued = await state_store.issue("session-1", "alice")

        with pytest.raises(InvalidStateError) as exc_info:
            await state_store.consume(issued.state, "session-2")
        assert "does not belong" in str(exc_info.value)
        assert await state_store.status_of(issued.state) == StateStatus.REJECTED

        with pytest.raises(InvalidStateError):
            await state_store.consume(issued.state, "session-1")

    @pytest.mark.asyncio
    async def test_expired_state_rejected(self, clocked_store, clock):
        """A state used after its TTL should be rejected and marked expired."""
        issued = await clocked_store.issue("session-1", "alice")
        clock.advance(timedelta(minutes=11))

        with pytest.raises(InvalidStateError) as exc_info:
            await clocked_store.consume(issued.state, "session-1")
        assert "expired" in str(exc_info.value)
        assert await clocked_store.status_of(issued.state) == StateStatus.EXPIRED

    @pytest.mark.asyncio
    async def test_state_valid_just_before_expiry(self, clocked_store, clock):
        """A state used within its TTL should be accepted."""
        issued = await clocked_store.issue("session-1", "alice")
        clock.advance(timedelta(minutes=9, seconds=59))

        assert await clocked_store.consume(issued.state, "session-1") == "alice"

    @pytest.mark.asyncio
    async def test_concurrent_consume_only_one_wins(self, state_store):
        """Two concurrent callbacks for one state must not both succeed."""
        issued = await state_store.issue("session-1", "alice")

        results = await asyncio.gather(
            state_store.consume(issued.state, "session-1"),
            state_store.consume(issued.state, "session-1"),
            return_exceptions=True,
        )

        successes = [r for r in results if r == "alice"]
        failures = [r for r in results if isinstance(r, InvalidStateError)]
        assert len(successes) == 1
        assert len(failures) == 1


class TestPurge:
    """Tests for purge_expired."""

    @pytest.mark.asyncio
    async def test_purge_removes_old_states(self, clocked_store, clock):
        """States expired for longer than the cutoff should be deleted."""
        old = await clocked_store.issue("session-1", "alice")
        clock.advance(timedelta(days=2))
        fresh = await clocked_store.issue("session-1", "alice")

        deleted = await clocked_store.purge_expired(older_than=timedelta(days=1))

        assert deleted == 1
        assert await clocked_store.status_of(old.state) is None
        assert await clocked_store.status_of(fresh.state) == StateStatus.INITIATED
