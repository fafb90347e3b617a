"""Message endpoints: history, streaming chat, and reset.

Endpoints:
    - GET /messages: Conversation ordered by time
    - GET /messages/{id}: Single message lookup
    - POST /messages/stream: Send a user message and stream the answer (SSE)
    - DELETE /messages: Clear the conversation
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from spacebio_chat.agent.orchestrator import StreamOrchestrator
from spacebio_chat.api.dependencies import get_orchestrator, get_store
from spacebio_chat.errors import NotFoundError, PersistenceError
from spacebio_chat.models.schemas import ClearResponse, ErrorResponse, Message, MessageCreate
from spacebio_chat.storage import MessageStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["messages"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

STORE_ERRORS = {500: {"model": ErrorResponse, "description": "Store unavailable"}}
STREAM_ERRORS = {
    400: {"model": ErrorResponse, "description": "Invalid message payload"},
    500: {"model": ErrorResponse, "description": "Missing credentials or store failure"},
    502: {"model": ErrorResponse, "description": "Completion provider refused the request"},
    504: {"model": ErrorResponse, "description": "Deadline expired before streaming"},
}


@router.get("", response_model=list[Message], responses=STORE_ERRORS)
async def list_messages(store: MessageStore = Depends(get_store)) -> list[Message]:
    """Return the whole conversation ordered by timestamp.

    Raises:
        500: The store is unavailable.
    """
    try:
        return await store.list()
    except Exception as e:
        logger.error(f"Failed to fetch messages: {e}")
        raise PersistenceError("Failed to fetch messages") from e


@router.get(
    "/{message_id}",
    response_model=Message,
    responses={404: {"model": ErrorResponse, "description": "Message not found"}},
)
async def get_message(message_id: str, store: MessageStore = Depends(get_store)) -> Message:
    """Look up one message by id.

    Raises:
        404: No message with this id.
    """
    message = await store.get(message_id)
    if message is None:
        raise NotFoundError("Message not found")
    return message


@router.post("/stream", responses=STREAM_ERRORS)
async def stream_message(
    payload: MessageCreate,
    request: Request,
    orchestrator: StreamOrchestrator = Depends(get_orchestrator),
) -> StreamingResponse:
    """Store the user message and stream the assistant's answer.

    Failures before the first byte come back as JSON ``{"error": ...}`` with
    an HTTP status. Failures after that arrive as one ``{"error": ...}``
    frame and the stream ends without ``[DONE]``.

    Raises:
        400: Invalid message payload.
        500: Missing credentials or store failure.
        502: The completion provider refused the request.
        504: The exchange deadline expired before streaming began.
    """
    exchange = await orchestrator.prepare(payload)

    return StreamingResponse(
        orchestrator.frames(exchange, disconnected=request.is_disconnected),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.delete("", response_model=ClearResponse, responses=STORE_ERRORS)
async def clear_messages(store: MessageStore = Depends(get_store)) -> ClearResponse:
    """Remove every stored message.

    Raises:
        500: The store is unavailable.
    """
    try:
        await store.clear()
    except Exception as e:
        logger.error(f"Failed to clear messages: {e}")
        raise PersistenceError("Failed to clear messages") from e
    return ClearResponse(success=True)
