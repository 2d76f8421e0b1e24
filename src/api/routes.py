"""
Google account linking and export routes.

Handles the OAuth 2.0 authorization code flow and calendar export:
1. /calendar/google/status - Check if user has connected calendar
2. /auth/google/connect - Start OAuth flow (returns the Google URL)
3. /auth/google/callback - Handle OAuth callback (exchange code for tokens)
4. /auth/google/disconnect - Remove the linked account
5. /calendar/google/export - Create or update events for a batch of items
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from src.api.dependencies import (
    Services,
    SessionContext,
    get_services,
    get_session_context,
)
from src.api.models import (
    ErrorResponse,
    ExportRequest,
    ExportSummaryDto,
    GoogleConnectResponse,
    GoogleStatusDto,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["google"])

_error_responses = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@router.get("/calendar/google/status", response_model=GoogleStatusDto)
async def google_status(
    context: SessionContext = Depends(get_session_context),
    services: Services = Depends(get_services),
) -> GoogleStatusDto:
    """
    Check if the caller has connected their Google Calendar.

    A stored refresh token counts as connected even when no access token
    is cached.
    """
    status = await services.connect_flow.get_status(context.username)
    return GoogleStatusDto(is_connected=status.is_connected, email=status.email)


@router.get(
    "/auth/google/connect",
    response_model=GoogleConnectResponse,
    responses=_error_responses,
)
async def google_connect(
    context: SessionContext = Depends(get_session_context),
    services: Services = Depends(get_services),
) -> GoogleConnectResponse:
    """
    Start the Google OAuth flow.

    Returns the authorization URL that the client should redirect to.
    The state token is bound to the caller's session and accepted once.
    """
    result = await services.connect_flow.connect(
        session_id=context.session_id,
        username=context.username,
        email=context.email,
    )
    return GoogleConnectResponse(url=result.url, state_token=result.state_token)


@router.get(
    "/auth/google/callback",
    response_model=GoogleStatusDto,
    responses=_error_responses,
)
async def google_callback(
    code: Optional[str] = Query(None, description="Authorization code from Google"),
    state: Optional[str] = Query(None, description="State token for CSRF protection"),
    error: Optional[str] = Query(None, description="Error from Google OAuth"),
    error_description: Optional[str] = Query(None),
    context: SessionContext = Depends(get_session_context),
    services: Services = Depends(get_services),
) -> GoogleStatusDto:
    """
    Handle the Google OAuth callback.

    Google redirects here after the user grants or denies permission.
    On success, exchanges the authorization code for tokens and stores them.
    """
    account = await services.connect_flow.callback(
        session_id=context.session_id,
        code=code,
        state=state,
        error=error,
        error_description=error_description,
    )
    return GoogleStatusDto(is_connected=True, email=account.email)


@router.post("/auth/google/disconnect", response_model=GoogleStatusDto)
async def google_disconnect(
    context: SessionContext = Depends(get_session_context),
    services: Services = Depends(get_services),
) -> GoogleStatusDto:
    """
    Disconnect the caller's Google Calendar.

    Removes the stored tokens. Disconnecting twice is not an error.
    """
    await services.connect_flow.disconnect(context.username)
    return GoogleStatusDto(is_connected=False)


@router.post(
    "/calendar/google/export",
    response_model=ExportSummaryDto,
    responses=_error_responses,
)
async def google_export(
    request: ExportRequest,
    context: SessionContext = Depends(get_session_context),
    services: Services = Depends(get_services),
) -> ExportSummaryDto:
    """
    Export calendar items to the caller's Google Calendar.

    Items are matched to previously exported events by external key.
    Individual item failures are reported in the summary, not as errors.
    """
    items = [dto.to_item() for dto in request.items]
    logger.info(f"Exporting {len(items)} items for user {context.username}")

    summary = await services.export_engine.export_events(context.username, items)
    return ExportSummaryDto(
        created=summary.created,
        updated=summary.updated,
        failed=summary.failed,
        errors=summary.errors,
    )
