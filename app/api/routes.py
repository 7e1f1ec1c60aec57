"""
FastAPI routes for the calendar integrations.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import JSONResponse

from app.clients.office365_auth import encode_oauth_state
from app.dependencies import (
    get_office365_callback_handler,
    get_office365_oauth_client,
    get_session_store,
)
from app.schemas import AuthorizationUrlResponse
from app.services.office365_callback import UNAUTHENTICATED_MESSAGE

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get(
    "/integrations/office365calendar/add",
    status_code=HTTPStatus.OK,
    response_model=AuthorizationUrlResponse,
)
async def start_office365_calendar_oauth_flow(
    request: Request,
    oauth_client: Annotated[Any, Depends(get_office365_oauth_client)],
    session_store: Annotated[Any, Depends(get_session_store)],
    return_to: str | None = Query(
        default=None,
        alias="returnTo",
        description="Location to send the browser back to once connected.",
    ),
) -> Any:
    """Return the Microsoft consent URL for the signed-in user."""
    session = await session_store.get_session(request)
    if session is None or not session.user_id:
        return JSONResponse(
            status_code=HTTPStatus.UNAUTHORIZED,
            content={"message": UNAUTHENTICATED_MESSAGE},
        )

    state = encode_oauth_state(return_to)
    url = oauth_client.build_authorization_url(state=state)
    logger.debug("Starting Office 365 calendar connection for user %s.", session.user_id)
    return AuthorizationUrlResponse(url=url)


@router.get("/integrations/office365calendar/callback")
async def handle_office365_calendar_callback(
    request: Request,
    handler: Annotated[Any, Depends(get_office365_callback_handler)],
) -> Response:
    """Complete the OAuth exchange, store the credential and redirect."""
    return await handler.handle(request)
