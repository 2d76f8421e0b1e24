"""
Linked account domain types.

LinkedAccount is what callers work with: plaintext tokens, timezone-aware
expiry. The persisted document form (camelCase keys, ISO timestamps) is
produced and consumed only by AccountRepository.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Optional


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and normalize aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class LinkedAccount:
    """
    Credentials and metadata linking a local user to a Google account.

    Attributes:
        external_id: Stable Google account id
        email: Google account email
        refresh_token: Long-lived refresh token
        access_token: Cached short-lived access token, if any
        access_token_expiry: Expiry of the cached access token (UTC)
        scopes: Granted OAuth scopes, in grant order
    """

    external_id: Optional[str]
    email: Optional[str]
    refresh_token: Optional[str]
    access_token: Optional[str] = None
    access_token_expiry: Optional[datetime] = None
    scopes: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        # Empty strings mean "absent" throughout the storage layer
        if not self.access_token and self.access_token is not None:
            object.__setattr__(self, "access_token", None)
        if not self.refresh_token and self.refresh_token is not None:
            object.__setattr__(self, "refresh_token", None)
        if (self.access_token is None) != (self.access_token_expiry is None):
            raise ValueError("access_token and access_token_expiry must be set together")
        if self.access_token_expiry is not None:
            object.__setattr__(self, "access_token_expiry", as_utc(self.access_token_expiry))
        object.__setattr__(self, "scopes", tuple(dict.fromkeys(self.scopes)))

    @property
    def is_connected(self) -> bool:
        """An account with a refresh token is connected, cached token or not."""
        return bool(self.refresh_token)

    def has_fresh_access_token(self, now: datetime, margin: timedelta) -> bool:
        """Check whether the cached access token outlives now + margin."""
        if not self.access_token or self.access_token_expiry is None:
            return False
        return self.access_token_expiry > as_utc(now) + margin

    def with_access_token(
        self,
        access_token: str,
        expiry: datetime,
        refresh_token: Optional[str] = None,
    ) -> "LinkedAccount":
        """Return a copy carrying a new access token (and rotated refresh token, if given)."""
        return replace(
            self,
            access_token=access_token,
            access_token_expiry=expiry,
            refresh_token=refresh_token or self.refresh_token,
        )

    def to_document(self) -> dict:
        """Serialize to the stored sub-record layout. Tokens are passed as-is."""
        return {
            "externalId": self.external_id,
            "email": self.email,
            "refreshToken": self.refresh_token,
            "accessToken": self.access_token,
            "accessTokenExpiry": (
                self.access_token_expiry.isoformat() if self.access_token_expiry else None
            ),
            "scopes": list(self.scopes),
        }

    @classmethod
    def from_document(cls, document: dict) -> "LinkedAccount":
        """
        Deserialize a stored sub-record.

        A record holding only one of accessToken / accessTokenExpiry is
        read back with neither, so the token is simply refreshed on use.
        """
        access_token = document.get("accessToken") or None
        raw_expiry = document.get("accessTokenExpiry")
        expiry = datetime.fromisoformat(raw_expiry) if raw_expiry else None
        if access_token is None or expiry is None:
            access_token, expiry = None, None

        return cls(
            external_id=document.get("externalId"),
            email=document.get("email"),
            refresh_token=document.get("refreshToken") or None,
            access_token=access_token,
            access_token_expiry=expiry,
            scopes=tuple(document.get("scopes") or ()),
        )


@dataclass(frozen=True)
class LocalUser:
    """A local user as seen by callers: tokens already unprotected."""

    username: str
    email: Optional[str] = None
    linked_account: Optional[LinkedAccount] = None
