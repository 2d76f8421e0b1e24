"""
SQLAlchemy models for Calendar Link.

This module exports all database models for easy importing and
ensures Alembic can discover them for migrations.
"""

from src.models.base import Base, BaseModel, GUID, get_json_type
from src.models.users import User
from src.models.oauth_states import OAuthState, StateStatus

__all__ = [
    # Base classes
    "Base",
    "BaseModel",
    "GUID",
    "get_json_type",
    # Users
    "User",
    # OAuth state tokens
    "OAuthState",
    "StateStatus",
]
