"""Request, response and domain models.

Models:
    - Message: A persisted chat message
    - MessageCreate: Incoming user message payload
    - ChatTurn: Prompt entry sent to the completion provider
    - ErrorResponse / ClearResponse: JSON response bodies
"""

from spacebio_chat.models.schemas import (
    ChatTurn,
    ClearResponse,
    ErrorResponse,
    Message,
    MessageCreate,
    MessageRole,
)

__all__ = [
    "ChatTurn",
    "ClearResponse",
    "ErrorResponse",
    "Message",
    "MessageCreate",
    "MessageRole",
]
