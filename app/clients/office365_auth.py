"""
Microsoft identity platform OAuth utilities.

These helpers build the consent URL, exchange authorization codes and look up
the signed-in Microsoft Graph user for the Office 365 calendar integration.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote, urlencode

import httpx

from app.core.config import MSGraphSettings
from app.schemas.auth import GraphProfile, OAuthState

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/api/integrations/office365calendar/callback"
SCOPES = ("offline_access", "Calendars.Read", "Calendars.ReadWrite")


def _to_url_encoded(payload: Dict[str, str]) -> str:
    """Encode form fields the way browsers' ``encodeURIComponent`` does."""
    return urlencode(payload, quote_via=quote, safe="!~*'()")


def encode_oauth_state(return_to: Optional[str]) -> Optional[str]:
    """Serialize the post-connection return location for the ``state`` parameter."""
    if return_to is None:
        return None
    return OAuthState(return_to=return_to).model_dump_json(by_alias=True)


def decode_oauth_state(raw_state: Optional[str]) -> Optional[OAuthState]:
    """Parse the ``state`` query parameter; unreadable state is treated as absent."""
    if not raw_state:
        return None
    try:
        data = json.loads(raw_state)
    except ValueError:
        logger.warning("Ignoring OAuth state that is not valid JSON.")
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring OAuth state that is not a JSON object.")
        return None
    return_to = data.get("returnTo")
    if return_to is not None and not isinstance(return_to, str):
        return_to = None
    return OAuthState(return_to=return_to)


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint returns an error."""

    def __init__(self, payload: Any, status_code: int) -> None:
        super().__init__(f"Token endpoint responded with HTTP {status_code}.")
        self.payload = payload
        self.status_code = status_code


class OAuthProfileFetchError(Exception):
    """Raised when Microsoft Graph refuses to return the signed-in user."""


class Office365OAuthClient:
    """Build Microsoft authorization URLs, exchange codes and fetch profiles."""

    AUTH_BASE_URL = "https://login.microsoftonline.com/common/oauth2/v2.0/authorize"
    TOKEN_URL = "https://login.microsoftonline.com/common/oauth2/v2.0/token"
    PROFILE_URL = "https://graph.microsoft.com/v1.0/me"

    def __init__(
        self,
        ms_graph_settings: MSGraphSettings,
        base_url: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._ms_graph = ms_graph_settings
        self._redirect_uri = base_url.rstrip("/") + CALLBACK_PATH
        self._transport = transport

    @property
    def redirect_uri(self) -> str:
        return self._redirect_uri

    def _client(self) -> httpx.AsyncClient:
        # No timeout: the provider calls are allowed to take as long as they take.
        return httpx.AsyncClient(timeout=None, transport=self._transport)

    def build_authorization_url(self, state: Optional[str] = None) -> str:
        """Construct the Microsoft consent URL."""
        params = {
            "response_type": "code",
            "scope": " ".join(SCOPES),
            "client_id": self._ms_graph.client_id,
            "redirect_uri": self._redirect_uri,
        }
        if state is not None:
            params["state"] = state
        return f"{self.AUTH_BASE_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> Dict[str, Any]:
        """
        Exchange an authorization code for tokens.

        Returns the provider's JSON payload untouched so provider-specific
        fields are kept alongside ``access_token`` and ``expires_in``.
        """
        body = _to_url_encoded(
            {
                "client_id": self._ms_graph.client_id,
                "grant_type": "authorization_code",
                "code": code,
                "scope": " ".join(SCOPES),
                "redirect_uri": self._redirect_uri,
                "client_secret": self._ms_graph.client_secret,
            }
        )

        async with self._client() as client:
            response = await client.post(
                self.TOKEN_URL,
                content=body,
                headers={
                    "Content-Type": "application/x-www-form-urlencoded;charset=UTF-8"
                },
            )

        token_payload = response.json()
        if not response.is_success:
            raise OAuthTokenExchangeError(token_payload, response.status_code)
        return token_payload

    async def fetch_profile(self, access_token: str) -> GraphProfile:
        """Return the Microsoft Graph user the access token belongs to."""
        async with self._client() as client:
            response = await client.get(
                self.PROFILE_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )

        if not response.is_success:
            raise OAuthProfileFetchError(
                f"Microsoft Graph /me responded with HTTP {response.status_code}."
            )
        return GraphProfile.model_validate(response.json())


__all__ = [
    "CALLBACK_PATH",
    "SCOPES",
    "Office365OAuthClient",
    "OAuthProfileFetchError",
    "OAuthTokenExchangeError",
    "decode_oauth_state",
    "encode_oauth_state",
]
