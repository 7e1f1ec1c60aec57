"""Schemas related to the Office 365 OAuth flow."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class OAuthState(BaseModel):
    """State round-tripped through the provider to restore the user's location."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    return_to: Optional[str] = Field(None, alias="returnTo")


class GraphProfile(BaseModel):
    """Subset of the Microsoft Graph ``/me`` resource used to resolve an email."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    mail: Optional[str] = None
    user_principal_name: Optional[str] = Field(None, alias="userPrincipalName")

    @property
    def email(self) -> Optional[str]:
        # mail is null for some accounts; the UPN then carries the address.
        if self.mail is not None:
            return self.mail
        return self.user_principal_name


class AuthorizationUrlResponse(BaseModel):
    """Response returned when starting the Office 365 connection."""

    url: str


__all__ = ["AuthorizationUrlResponse", "GraphProfile", "OAuthState"]
