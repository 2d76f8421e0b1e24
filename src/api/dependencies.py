"""
FastAPI dependency injection providers.

Provides the service container and the caller's session context.
"""

import hashlib
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from fastapi import Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from src.auth import (
    AccountRepository,
    GoogleConnectFlow,
    GoogleOAuthFlow,
    StateTokenStore,
    TokenLifecycleManager,
    TokenProtector,
)
from src.config import Settings
from src.database import create_engine_for_url, create_session_factory
from src.integrations.google_calendar import GoogleCalendarRepository
from src.services import ExportEngine

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Wired-up application services, held on app.state.services."""

    connect_flow: GoogleConnectFlow
    export_engine: ExportEngine
    repository: AccountRepository
    engine: Optional[AsyncEngine] = None

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()


def build_services(
    settings: Settings,
    engine: Optional[AsyncEngine] = None,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> Services:
    """
    Wire services from settings.

    Args:
        settings: Application settings
        engine: Database engine (created from settings.database_url if None)
        session_factory: Session factory (created from the engine if None)
    """
    if engine is None:
        engine = create_engine_for_url(settings.database_url)
    if session_factory is None:
        session_factory = create_session_factory(engine)

    protector = TokenProtector.from_settings(settings)
    repository = AccountRepository(session_factory, protector)
    states = StateTokenStore(
        session_factory,
        ttl=timedelta(seconds=settings.oauth_state_ttl_seconds),
    )
    oauth = GoogleOAuthFlow.from_settings(settings)
    token_manager = TokenLifecycleManager(
        oauth,
        repository,
        refresh_margin=timedelta(seconds=settings.access_token_refresh_margin_seconds),
    )

    def gateway_factory(access_token: str) -> GoogleCalendarRepository:
        return GoogleCalendarRepository.for_access_token(
            access_token,
            calendar_id=settings.google_calendar_id,
            max_workers=settings.export_max_concurrency,
        )

    export_engine = ExportEngine(
        repository,
        token_manager,
        gateway_factory,
        max_concurrency=settings.export_max_concurrency,
    )

    logger.info("Services initialized")
    return Services(
        connect_flow=GoogleConnectFlow(oauth, repository, states),
        export_engine=export_engine,
        repository=repository,
        engine=engine,
    )


def get_services(request: Request) -> Services:
    """
    Dependency injection for the service container.

    Raises:
        HTTPException: If services are not initialized
    """
    services = getattr(request.app.state, "services", None)
    if services is None:
        logger.error("Services not initialized")
        raise HTTPException(
            status_code=503,
            detail="Service temporarily unavailable - services not initialized",
        )
    return services


@dataclass(frozen=True)
class SessionContext:
    """Caller identity as supplied by the upstream identity system."""

    session_id: str
    username: str
    email: Optional[str] = None


def hash_session_cookie(cookie: str) -> str:
    """Session id stored with state tokens; the raw cookie is never persisted."""
    return hashlib.sha256(cookie.encode("utf-8")).hexdigest()


def get_session_context(
    x_session_cookie: Optional[str] = Header(None, description="Opaque session cookie"),
    x_user_id: Optional[str] = Header(None, description="Local username"),
    x_user_email: Optional[str] = Header(None, description="User email"),
) -> SessionContext:
    """
    Extract the session context from headers.

    Raises:
        HTTPException: 401 if the session cookie or user id is missing
    """
    if not x_session_cookie or not x_user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")

    return SessionContext(
        session_id=hash_session_cookie(x_session_cookie),
        username=x_user_id,
        email=x_user_email or None,
    )
