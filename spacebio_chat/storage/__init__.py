"""Message persistence.

The store owns the canonical conversation. Everything else reads a fresh
snapshot through `MessageStore.list()` and never keeps a mutable copy.
"""

from spacebio_chat.storage.base import MessageStore
from spacebio_chat.storage.memory import InMemoryMessageStore, get_message_store

__all__ = ["InMemoryMessageStore", "MessageStore", "get_message_store"]
