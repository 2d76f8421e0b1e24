"""
Local user model.

The linked calendar account is stored as an embedded JSON sub-record on
the user row. Token fields inside it are ciphertext; only
AccountRepository reads or writes this column.
"""

from typing import Optional

from sqlalchemy import String, Index
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import BaseModel, get_json_type


class User(BaseModel):
    """
    A local user, keyed by username.

    Attributes:
        username: Unique, case-sensitive login name from the identity system
        email: Email address, set opportunistically
        linked_account: Embedded linked-account document, or NULL when unlinked
    """

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Unique username from the upstream identity system"
    )

    email: Mapped[Optional[str]] = mapped_column(
        String(320),
        nullable=True,
        doc="User email (never overwritten with an empty value)"
    )

    linked_account: Mapped[Optional[dict]] = mapped_column(
        get_json_type()(none_as_null=True),
        nullable=True,
        doc="Linked calendar account sub-record (tokens encrypted)"
    )

    __table_args__ = (
        Index("ix_users_username", "username", unique=True),
        Index("ix_users_email", "email"),
    )

    def __repr__(self) -> str:
        return f"<User(username={self.username}, linked={self.linked_account is not None})>"
