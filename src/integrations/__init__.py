"""
External service integrations for Calendar Link.

Provides the abstraction layer export writes calendar items through.
"""

from src.integrations.base import CalendarEventGateway, CalendarItem, ItemCategory

__all__ = ["CalendarEventGateway", "CalendarItem", "ItemCategory"]
