"""
Pydantic request and response models for the Calendar Link API.

Field names are camelCase on the wire and snake_case in Python.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.integrations.base import CalendarItem, ItemCategory


class CamelModel(BaseModel):
    """Base model serializing field names as camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Request Models
# =============================================================================


class CalendarItemDto(CamelModel):
    """One calendar item to export."""

    external_key: str = Field(
        ...,
        description="Stable identifier of the source item",
        examples=["course-meeting:42"],
    )
    title: str = Field(..., examples=["Linear Algebra"])
    subject: str = Field("", examples=["MATH 221"])
    start: datetime
    end: datetime
    category: ItemCategory = ItemCategory.COURSE
    location: Optional[str] = None
    color: Optional[str] = Field(None, examples=["#315F94"])
    description: Optional[str] = None

    @field_validator("category", mode="before")
    @classmethod
    def parse_category(cls, v):
        if v is None:
            return ItemCategory.COURSE
        return ItemCategory.parse(v)

    def to_item(self) -> CalendarItem:
        return CalendarItem(
            external_key=self.external_key,
            title=self.title,
            subject=self.subject,
            start=self.start,
            end=self.end,
            category=self.category,
            location=self.location,
            color=self.color,
            description=self.description,
        )


class ExportRequest(CamelModel):
    """Batch of items to export."""

    items: list[CalendarItemDto] = Field(default_factory=list)


# =============================================================================
# Response Models
# =============================================================================


class GoogleStatusDto(CamelModel):
    """Google connection status."""

    is_connected: bool
    email: Optional[str] = None


class GoogleConnectResponse(CamelModel):
    """Authorization URL the client should redirect to."""

    url: str
    state_token: str


class ExportSummaryDto(CamelModel):
    """Export outcome counts and per-item errors."""

    created: int
    updated: int
    failed: int
    errors: list[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["healthy", "unhealthy"]
    version: str
    database_connected: bool


class ErrorResponse(BaseModel):
    """Standard error response."""

    error_type: str
    message: str
    retryable: bool = False
