"""
Calendar export protocol and base types.

Defines the items callers export and the interface a calendar provider
backend implements for the export engine.
"""

import enum
from abc import abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol


class ItemCategory(str, enum.Enum):
    """Kind of academic calendar item."""

    COURSE = "course"
    ASSIGNMENT = "assignment"

    @property
    def label(self) -> str:
        """Human-readable label."""
        return "Course" if self is ItemCategory.COURSE else "Assignment / Exam"

    @classmethod
    def parse(cls, value: "str | ItemCategory") -> "ItemCategory":
        """
        Parse a category from caller input.

        Accepts the enum values plus the labels used by the calendar UI
        ("Course", "Lecture", "Assignment / Exam", "Exam", ...).
        """
        if isinstance(value, ItemCategory):
            return value
        normalized = str(value).strip().lower()
        if normalized in ("course", "lecture", "class", "course-meeting"):
            return cls.COURSE
        if normalized in ("assignment", "exam", "assignment / exam", "assignment-or-exam", "test"):
            return cls.ASSIGNMENT
        raise ValueError(f"Unknown calendar item category: {value!r}")


@dataclass(frozen=True)
class CalendarItem:
    """
    One item to export.

    external_key identifies the item across exports (for example
    "<source system>:<item id>") and is how existing provider events are
    found again.
    """

    external_key: str
    title: str
    subject: str
    start: datetime
    end: datetime
    category: ItemCategory = ItemCategory.COURSE
    location: Optional[str] = None
    color: Optional[str] = None
    description: Optional[str] = None


class CalendarEventGateway(Protocol):
    """
    Protocol for the provider-side event operations used by export.

    Implementations:
    - GoogleCalendarRepository: Uses Google Calendar API
    """

    @abstractmethod
    async def find_event_id(self, external_key: str) -> Optional[str]:
        """
        Find the provider event created for an external key.

        Returns:
            Provider event ID, or None if no such event exists
        """
        ...

    @abstractmethod
    async def create_event(self, item: CalendarItem) -> str:
        """
        Create a provider event for an item.

        Returns:
            ID of the created event
        """
        ...

    @abstractmethod
    async def update_event(self, event_id: str, item: CalendarItem) -> str:
        """
        Update an existing provider event from an item.

        Returns:
            ID of the updated event
        """
        ...
