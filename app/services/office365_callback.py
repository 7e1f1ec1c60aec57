"""
Completion of the Office 365 calendar OAuth flow.

The handler runs the provider callback as a straight pipeline: check the
session, validate the code, exchange it, look up the Graph user, normalize the
token payload and store it as a credential before redirecting the browser.
"""

from __future__ import annotations

import json
import logging
import math
import time
from http import HTTPStatus
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

from fastapi import Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from app.clients.office365_auth import OAuthTokenExchangeError, decode_oauth_state
from app.models.credential import OFFICE365_CALENDAR_TYPE, AuthSession, CredentialRecord
from app.schemas.auth import GraphProfile

logger = logging.getLogger(__name__)

INTEGRATIONS_PATH = "/integrations"
UNAUTHENTICATED_MESSAGE = "You must be logged in to do this"
MISSING_CODE_MESSAGE = "No code returned"

SessionResolver = Callable[[Request], Awaitable[Optional[AuthSession]]]


class IdentityProvider(Protocol):
    async def exchange_code(self, code: str) -> Dict[str, Any]: ...

    async def fetch_profile(self, access_token: str) -> GraphProfile: ...


class CredentialWriter(Protocol):
    def create(self, *, type: str, key: Dict[str, Any], user_id: str) -> CredentialRecord: ...


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def normalize_token_payload(
    token_payload: Dict[str, Any], profile: GraphProfile, now: float
) -> Dict[str, Any]:
    """Fold the user's email in and swap the relative expiry for an absolute one.

    The payload is modified in place and returned.
    """
    token_payload["email"] = profile.email
    expires_in = token_payload.pop("expires_in", None)
    if expires_in is not None:
        token_payload["expiry_date"] = _round_half_up(now + float(expires_in))
    return token_payload


def token_error_location(payload: Any) -> str:
    """Location used when the token endpoint rejects the code."""
    return f"{INTEGRATIONS_PATH}?error=" + json.dumps(payload, separators=(",", ":"))


class CallbackHandler:
    """Handle the redirect back from Microsoft after the user grants consent."""

    def __init__(
        self,
        *,
        session_resolver: SessionResolver,
        oauth_client: IdentityProvider,
        credential_store: CredentialWriter,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._resolve_session = session_resolver
        self._oauth = oauth_client
        self._credentials = credential_store
        self._clock = clock

    async def handle(self, request: Request) -> Response:
        session = await self._resolve_session(request)
        if session is None or not session.user_id:
            return JSONResponse(
                status_code=HTTPStatus.UNAUTHORIZED,
                content={"message": UNAUTHENTICATED_MESSAGE},
            )

        codes = request.query_params.getlist("code")
        if len(codes) != 1:
            return JSONResponse(
                status_code=HTTPStatus.BAD_REQUEST,
                content={"message": MISSING_CODE_MESSAGE},
            )
        code = codes[0]

        try:
            token_payload = await self._oauth.exchange_code(code)
        except OAuthTokenExchangeError as exc:
            logger.warning(
                "Office 365 token exchange failed for user %s (HTTP %s).",
                session.user_id,
                exc.status_code,
            )
            return RedirectResponse(
                url=token_error_location(exc.payload),
                status_code=HTTPStatus.TEMPORARY_REDIRECT,
            )

        profile = await self._oauth.fetch_profile(token_payload.get("access_token", ""))
        normalize_token_payload(token_payload, profile, self._clock())

        record = self._credentials.create(
            type=OFFICE365_CALENDAR_TYPE,
            key=token_payload,
            user_id=session.user_id,
        )
        logger.info(
            "Stored Office 365 calendar credential %s for user %s.",
            record.id,
            session.user_id,
        )

        state = decode_oauth_state(request.query_params.get("state"))
        location = state.return_to if state and state.return_to else INTEGRATIONS_PATH
        return RedirectResponse(url=location, status_code=HTTPStatus.TEMPORARY_REDIRECT)


__all__ = [
    "CallbackHandler",
    "INTEGRATIONS_PATH",
    "MISSING_CODE_MESSAGE",
    "UNAUTHENTICATED_MESSAGE",
    "normalize_token_payload",
    "token_error_location",
]
