"""
Domain models for the signed-in user and persisted integration credentials.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

OFFICE365_CALENDAR_TYPE = "office365_calendar"


class AuthSession(BaseModel):
    """Identity of the user the inbound request is signed in as."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")


class CredentialRecord(BaseModel):
    """Represents a credential row stored for a calendar integration."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = Field(None, description="Row identifier assigned on insert.")
    type: str = Field(..., description="Integration the credential belongs to.")
    key: Dict[str, Any] = Field(..., description="Normalized token payload.")
    user_id: str = Field(..., alias="userId")


__all__ = ["AuthSession", "CredentialRecord", "OFFICE365_CALENDAR_TYPE"]
