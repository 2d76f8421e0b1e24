"""
Mapping from exported calendar items to Google Calendar API event bodies.

Handles:
- DateTime formatting (RFC 3339, UTC)
- Description composed from subject, category and free text
- Nearest Google event color for the item's display color
- Private extended properties used to find the event again
"""

import re
from datetime import datetime, timezone
from typing import Optional

from src.integrations.base import CalendarItem, ItemCategory

# Private extended property holding the item's external key
EXTERNAL_KEY_PROPERTY = "externalKey"

# Google Calendar event palette (colorId -> RGB hex)
GOOGLE_EVENT_COLORS = {
    "1": "#7986cb",  # Lavender
    "2": "#33b679",  # Sage
    "3": "#8e24aa",  # Grape
    "4": "#e67c73",  # Flamingo
    "5": "#f6bf26",  # Banana
    "6": "#f4511e",  # Tangerine
    "7": "#039be5",  # Peacock
    "8": "#616161",  # Graphite
    "9": "#3f51b5",  # Blueberry
    "10": "#0b8043",  # Basil
    "11": "#d50000",  # Tomato
}

DEFAULT_CATEGORY_COLORS = {
    ItemCategory.COURSE: "9",
    ItemCategory.ASSIGNMENT: "11",
}

_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{6})$")


class GoogleCalendarAdapter:
    """Maps CalendarItem to Google Calendar API format."""

    @staticmethod
    def to_google_event(item: CalendarItem) -> dict:
        """
        Convert a calendar item to a Google Calendar event body.

        The same body is used for insert and patch, so re-exporting an
        item overwrites the fields it owns and leaves the rest alone.
        """
        google_event: dict = {
            "summary": item.title,
            "description": build_description(item),
            "start": {
                "dateTime": _format_datetime(item.start),
                "timeZone": "UTC",
            },
            "end": {
                "dateTime": _format_datetime(item.end),
                "timeZone": "UTC",
            },
            "colorId": color_id_for(item.color, item.category),
            "extendedProperties": {
                "private": {
                    EXTERNAL_KEY_PROPERTY: item.external_key,
                    "category": item.category.value,
                    "subject": item.subject,
                },
            },
        }

        if item.location:
            google_event["location"] = item.location

        return google_event


def build_description(item: CalendarItem) -> str:
    """Compose the event description shown in Google Calendar."""
    lines = []
    if item.subject:
        lines.append(item.subject)
    lines.append(item.category.label)
    if item.description:
        lines.append("")
        lines.append(item.description)
    return "\n".join(lines)


def color_id_for(color: Optional[str], category: ItemCategory) -> str:
    """
    Pick the Google colorId closest to a hex display color.

    Falls back to the category's default color when no valid
    "#rrggbb" color is given.
    """
    rgb = _parse_hex(color)
    if rgb is None:
        return DEFAULT_CATEGORY_COLORS[category]

    def distance(color_id: str) -> int:
        candidate = _parse_hex(GOOGLE_EVENT_COLORS[color_id])
        return sum((a - b) ** 2 for a, b in zip(rgb, candidate))

    return min(GOOGLE_EVENT_COLORS, key=distance)


def _parse_hex(color: Optional[str]) -> Optional[tuple[int, int, int]]:
    if not color:
        return None
    match = _HEX_COLOR.match(color.strip())
    if not match:
        return None
    value = match.group(1)
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


def _format_datetime(dt: datetime) -> str:
    """
    Format datetime to RFC 3339 format for Google API.

    Naive datetimes are treated as UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    elif dt.tzinfo != timezone.utc:
        dt = dt.astimezone(timezone.utc)

    return dt.isoformat()
