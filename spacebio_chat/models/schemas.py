"""Pydantic models for API requests, responses and stored messages.

Provides type safety, validation, and automatic OpenAPI documentation.
"""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MessageRole(str, Enum):
    """Speaker of a stored chat message."""

    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """A persisted chat message.

    Messages are immutable once created by the store.

    Attributes:
        id: Unique identifier assigned by the store.
        role: Who produced the message (user or assistant).
        content: The message text.
        timestamp: When the message was appended (UTC).
    """

    model_config = ConfigDict(frozen=True)

    id: str
    role: MessageRole
    content: str
    timestamp: datetime


class MessageCreate(BaseModel):
    """Request payload for the streaming chat endpoint.

    Attributes:
        role: Must be "user"; clients cannot inject assistant turns.
        content: The user's question.
    """

    role: Literal["user"]
    content: str = Field(..., min_length=1)

    @field_validator("content", mode="before")
    @classmethod
    def strip_content(cls, v: str) -> str:
        """Strip whitespace from content before validation."""
        if isinstance(v, str):
            return v.strip()
        return v


class ChatTurn(BaseModel):
    """One entry of the prompt sent to the completion provider."""

    role: Literal["system", "user", "assistant"]
    content: str


class ErrorResponse(BaseModel):
    """JSON body returned for non-streaming failures."""

    error: str


class ClearResponse(BaseModel):
    """Response after clearing the conversation."""

    success: bool
