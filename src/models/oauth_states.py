"""
OAuth state token storage model.

Each row is one linking attempt. The status column only ever moves out
of 'initiated' once, through a conditional UPDATE.
"""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import BaseModel


class StateStatus(str, enum.Enum):
    """Lifecycle of an OAuth state token."""

    INITIATED = "initiated"
    CONSUMED = "consumed"
    EXPIRED = "expired"
    REJECTED = "rejected"


class OAuthState(BaseModel):
    """
    A single-use anti-CSRF state token.

    Attributes:
        state: Random token round-tripped through the provider redirect
        session_id: Digest of the session that started the attempt
        username: User the resulting account will be linked to
        status: One of StateStatus
        expires_at: When the token stops being accepted
        consumed_at: When the token left the 'initiated' status
    """

    __tablename__ = "oauth_states"

    state: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        doc="State token value"
    )

    session_id: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        doc="Session the state is bound to"
    )

    username: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="User who started the linking attempt"
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=StateStatus.INITIATED.value,
        doc="initiated, consumed, expired or rejected"
    )

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        doc="Expiry of the state token"
    )

    consumed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="When the state reached a terminal status"
    )

    __table_args__ = (
        Index("ix_oauth_states_state", "state", unique=True),
        Index("ix_oauth_states_expires_at", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<OAuthState(username={self.username}, status={self.status})>"
