"""
Pydantic schemas for chat API requests and responses.

Request fields are optional at the schema level so that a missing
sessionId or prompt reaches the service and is reported as a 400 with a
descriptive message.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AskRequest(BaseModel):
    """
    Request payload for the ask-ai endpoint.
    """
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(default=None, alias="sessionId")
    prompt: Optional[str] = None


class AskResponse(BaseModel):
    """Model reply for the submitted prompt."""
    reply: str


class HistoryItem(BaseModel):
    """
    One turn of a session's history.

    Represents either a user or an assistant message.
    """
    model_config = ConfigDict(from_attributes=True)

    role: Literal["user", "assistant"]
    message: str
    timestamp: Optional[datetime] = None

    @field_validator("timestamp")
    @classmethod
    def _as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        # Stored in UTC; SQLite drops the offset on read
        if v is None:
            return v
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class ClearRequest(BaseModel):
    """Request payload for the clear endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(default=None, alias="sessionId")


class ClearResponse(BaseModel):
    success: bool = True


class ErrorResponse(BaseModel):
    error: str
