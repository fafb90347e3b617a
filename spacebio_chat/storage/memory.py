"""In-memory message store guarded by an asyncio lock.

Process-lifetime storage: the conversation is lost on restart. Fine for a
single-user assistant where the UI clears history on every page load anyway.
"""

import asyncio
import logging
import uuid
from collections.abc import Callable
from datetime import UTC, datetime

from spacebio_chat.models.schemas import Message, MessageRole
from spacebio_chat.storage.base import MessageStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class InMemoryMessageStore(MessageStore):
    """Message store backed by an insertion-ordered dict.

    Args:
        clock: Callable returning the current time. Injectable for tests.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._lock = asyncio.Lock()
        self._messages: dict[str, Message] = {}

    async def append(self, role: MessageRole, content: str) -> Message:
        async with self._lock:
            message = Message(
                id=str(uuid.uuid4()),
                role=role,
                content=content,
                timestamp=self._clock(),
            )
            self._messages[message.id] = message
        logger.debug(f"Stored {role.value} message {message.id}")
        return message

    async def list(self) -> list[Message]:
        async with self._lock:
            snapshot = list(self._messages.values())
        # sorted() is stable, so equal timestamps keep insertion order
        return sorted(snapshot, key=lambda m: m.timestamp)

    async def clear(self) -> None:
        async with self._lock:
            count = len(self._messages)
            self._messages.clear()
        logger.info(f"Cleared {count} messages")

    async def get(self, message_id: str) -> Message | None:
        async with self._lock:
            return self._messages.get(message_id)


# Module-level singleton instance
_message_store: MessageStore | None = None


def get_message_store() -> MessageStore:
    """Get or create the process-wide message store.

    Returns:
        The shared MessageStore instance.
    """
    global _message_store
    if _message_store is None:
        _message_store = InMemoryMessageStore()
    return _message_store
