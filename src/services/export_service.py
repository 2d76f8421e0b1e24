"""
Calendar export service.

Reconciles a batch of calendar items against the linked user's Google
Calendar: each item either patches the event previously exported under its
external key or creates a new one. Per-item failures are collected into the
summary and never abort the batch.
"""

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from src.auth.account_repository import AccountRepository
from src.auth.token_manager import TokenLifecycleManager
from src.exceptions import ItemValidationError, NotLinkedError
from src.integrations.base import CalendarEventGateway, CalendarItem

logger = logging.getLogger(__name__)

# Builds a gateway acting with the given access token
GatewayFactory = Callable[[str], CalendarEventGateway]


class OutcomeKind(str, enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    FAILED = "failed"


@dataclass(frozen=True)
class ItemOutcome:
    """Result of exporting one item."""

    kind: OutcomeKind
    error: Optional[str] = None


@dataclass
class ExportSummary:
    """Aggregated result of one export invocation."""

    created: int = 0
    updated: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.created + self.updated + self.failed

    @classmethod
    def from_outcomes(cls, outcomes: Sequence[ItemOutcome]) -> "ExportSummary":
        summary = cls()
        for outcome in outcomes:
            if outcome.kind is OutcomeKind.CREATED:
                summary.created += 1
            elif outcome.kind is OutcomeKind.UPDATED:
                summary.updated += 1
            else:
                summary.failed += 1
                if outcome.error:
                    summary.errors.append(outcome.error)
        return summary


def validate_item(item: CalendarItem) -> None:
    """
    Check an item's structural preconditions.

    Raises:
        ItemValidationError: If the item has no external key or title, or
            ends before it starts
    """
    if not item.external_key or not item.external_key.strip():
        raise ItemValidationError("external key is required")
    if not item.title or not item.title.strip():
        raise ItemValidationError("title is required")
    try:
        backwards = item.start > item.end
    except TypeError as e:
        raise ItemValidationError("start and end must both carry a timezone or neither") from e
    if backwards:
        raise ItemValidationError(
            f"start {item.start.isoformat()} is after end {item.end.isoformat()}"
        )


def describe_failure(item: CalendarItem, error: Exception) -> str:
    """Human-readable error message attributable to one item."""
    title = item.title or "(untitled)"
    key = item.external_key or "(no key)"
    return f"'{title}' ({key}): {error}"


class ExportEngine:
    """
    Exports calendar items to a linked user's Google Calendar.

    The access token is resolved (and refreshed if needed) exactly once per
    invocation, before any item is dispatched. Items then run concurrently
    up to max_concurrency; extra items wait on the semaphore. Items with the
    same external key are exported one after another, so a later one updates
    the event an earlier one created.
    """

    def __init__(
        self,
        repository: AccountRepository,
        token_manager: TokenLifecycleManager,
        gateway_factory: GatewayFactory,
        max_concurrency: int = 5,
    ):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._repository = repository
        self._token_manager = token_manager
        self._gateway_factory = gateway_factory
        self._max_concurrency = max_concurrency

    async def export_events(
        self,
        username: str,
        items: Sequence[CalendarItem],
    ) -> ExportSummary:
        """
        Export items for a user.

        Args:
            username: Local user whose linked calendar receives the items
            items: Items to create or update

        Returns:
            Summary with created/updated/failed counts and one error
            message per failed item, in input order

        Raises:
            NotLinkedError: If the user has no linked Google account
            ProviderAuthError: If the access token cannot be refreshed
        """
        user = await self._repository.get_by_username(username)
        if user is None or user.linked_account is None:
            raise NotLinkedError(f"User {username} has not linked a Google account")
        if not user.linked_account.refresh_token:
            raise NotLinkedError(f"User {username} has no refresh token")

        if not items:
            return ExportSummary()

        access_token, _ = await self._token_manager.get_valid_access_token(
            username, user.linked_account
        )

        gateway = self._gateway_factory(access_token)
        semaphore = asyncio.Semaphore(self._max_concurrency)
        outcomes: list[Optional[ItemOutcome]] = [None] * len(items)

        # Items sharing an external key run in input order within one slot
        groups: dict[str, list[int]] = {}
        for index, item in enumerate(items):
            groups.setdefault(item.external_key, []).append(index)

        async def run(indexes: list[int]) -> None:
            async with semaphore:
                event_id = None
                for index in indexes:
                    outcomes[index], event_id = await self._export_item(
                        gateway, items[index], event_id
                    )

        try:
            await asyncio.gather(*(run(indexes) for indexes in groups.values()))
        finally:
            close = getattr(gateway, "close", None)
            if close is not None:
                await close()

        summary = ExportSummary.from_outcomes(outcomes)
        logger.info(
            f"Export for {username}: {summary.created} created, "
            f"{summary.updated} updated, {summary.failed} failed"
        )
        return summary

    async def _export_item(
        self,
        gateway: CalendarEventGateway,
        item: CalendarItem,
        known_event_id: Optional[str] = None,
    ) -> tuple[ItemOutcome, Optional[str]]:
        """
        Export one item.

        known_event_id is the event an earlier item with the same external
        key created or updated in this batch; it skips the lookup.

        Returns:
            Tuple of (outcome, event id now holding the external key)
        """
        try:
            validate_item(item)
        except ItemValidationError as e:
            logger.debug(f"Skipping invalid item {item.external_key!r}: {e}")
            return ItemOutcome(OutcomeKind.FAILED, describe_failure(item, e)), known_event_id

        try:
            event_id = known_event_id or await gateway.find_event_id(item.external_key)
            if event_id:
                await gateway.update_event(event_id, item)
                return ItemOutcome(OutcomeKind.UPDATED), event_id
            event_id = await gateway.create_event(item)
            return ItemOutcome(OutcomeKind.CREATED), event_id
        except Exception as e:
            logger.warning(f"Failed to export {item.external_key}: {e}")
            return ItemOutcome(OutcomeKind.FAILED, describe_failure(item, e)), known_event_id
