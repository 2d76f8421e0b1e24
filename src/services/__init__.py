"""
Service layer for Calendar Link.

Provides the batch export of calendar items to a linked Google Calendar.
"""

from src.services.export_service import (
    ExportEngine,
    ExportSummary,
    ItemOutcome,
    OutcomeKind,
    describe_failure,
    validate_item,
)

__all__ = [
    "ExportEngine",
    "ExportSummary",
    "ItemOutcome",
    "OutcomeKind",
    "describe_failure",
    "validate_item",
]
