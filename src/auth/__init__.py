"""
Authentication module for Calendar Link.

Provides Google account linking: token protection, linked-account
storage, OAuth state handling, the connect/callback flow and access
token refresh.
"""

from src.auth.accounts import LinkedAccount, LocalUser
from src.auth.account_repository import AccountRepository
from src.auth.connect_flow import ConnectionStatus, ConnectResult, GoogleConnectFlow
from src.auth.google_oauth import (
    CALENDAR_SCOPES,
    GoogleOAuthFlow,
    GoogleUserInfo,
    OAuthTokens,
)
from src.auth.state_store import IssuedState, StateTokenStore
from src.auth.token_manager import TokenLifecycleManager
from src.auth.token_protector import TOKEN_PURPOSE, TokenProtector

__all__ = [
    # Domain types
    "LinkedAccount",
    "LocalUser",
    # Storage
    "AccountRepository",
    "StateTokenStore",
    "IssuedState",
    "TokenProtector",
    "TOKEN_PURPOSE",
    # OAuth
    "CALENDAR_SCOPES",
    "GoogleOAuthFlow",
    "GoogleUserInfo",
    "OAuthTokens",
    "GoogleConnectFlow",
    "ConnectionStatus",
    "ConnectResult",
    "TokenLifecycleManager",
]
