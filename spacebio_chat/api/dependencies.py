"""FastAPI dependency providers.

Each collaborator of the chat pipeline is resolved through one of these
getters, so tests swap them with ``app.dependency_overrides``.
"""

from fastapi import Depends

from spacebio_chat.agent.completion import CompletionStreamClient
from spacebio_chat.agent.config import ChatConfig, get_chat_config
from spacebio_chat.agent.orchestrator import StreamOrchestrator
from spacebio_chat.agent.retriever import ContextRetriever
from spacebio_chat.storage import MessageStore, get_message_store


def get_store() -> MessageStore:
    """Get the process-wide message store."""
    return get_message_store()


def get_config() -> ChatConfig:
    """Get the chat configuration."""
    return get_chat_config()


def get_retriever(config: ChatConfig = Depends(get_config)) -> ContextRetriever:
    """Build a retrieval client for the current configuration."""
    return ContextRetriever(config)


def get_completion_client(
    config: ChatConfig = Depends(get_config),
) -> CompletionStreamClient:
    """Build a completion client for the current configuration."""
    return CompletionStreamClient(config)


def get_orchestrator(
    store: MessageStore = Depends(get_store),
    retriever: ContextRetriever = Depends(get_retriever),
    completion: CompletionStreamClient = Depends(get_completion_client),
    config: ChatConfig = Depends(get_config),
) -> StreamOrchestrator:
    """Create a fresh orchestrator for one exchange."""
    return StreamOrchestrator(
        store=store,
        retriever=retriever,
        completion=completion,
        config=config,
    )
