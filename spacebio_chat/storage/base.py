"""Abstract message store interface.

The orchestrator only depends on this interface, so the locking strategy
and persistence technology can change without touching the chat pipeline.
"""

from abc import ABC, abstractmethod

from spacebio_chat.models.schemas import Message, MessageRole


class MessageStore(ABC):
    """Ordered, append-only collection of chat messages."""

    @abstractmethod
    async def append(self, role: MessageRole, content: str) -> Message:
        """Create and append a message with a fresh id and timestamp.

        Raises:
            PersistenceError: If the underlying medium is unavailable.
        """

    @abstractmethod
    async def list(self) -> list[Message]:
        """Return all messages ordered by timestamp, ties by insertion order."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove all messages atomically."""

    @abstractmethod
    async def get(self, message_id: str) -> Message | None:
        """Look up a single message by id."""
