"""Pytest fixtures and shared test configuration.

Fixtures:
    - chat_config: Fully credentialed configuration (no real services)
    - store: Fresh in-memory message store
    - retriever / completion: Stubbed upstream services
    - app: FastAPI app with collaborators overridden
    - async_client: HTTPX client bound to the app over ASGI
"""

from collections.abc import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from spacebio_chat.agent.config import ChatConfig
from spacebio_chat.api.app import create_app
from spacebio_chat.api.dependencies import (
    get_completion_client,
    get_config,
    get_retriever,
    get_store,
)
from spacebio_chat.storage import InMemoryMessageStore
from tests.stubs import StubCompletion, StubRetriever


@pytest.fixture
def chat_config() -> ChatConfig:
    """Return a configuration with every credential set.

    Returns:
        ChatConfig that passes the credential check.
    """
    return ChatConfig(
        llama_api_key="llx-test-key",
        llama_index_name="space-biology",
        llama_project_name="Default",
        llama_project_id=None,
        llama_organization_id=None,
        llama_base_url="https://llama.test",
        similarity_top_k=5,
        azure_api_key="azure-test-key",
        azure_endpoint="https://azure.test",
        azure_deployment="gpt-4o",
        request_timeout=5.0,
        retrieval_timeout=1.0,
        max_history_messages=None,
    )


@pytest.fixture
def store() -> InMemoryMessageStore:
    """Return an empty message store."""
    return InMemoryMessageStore()


@pytest.fixture
def retriever() -> StubRetriever:
    """Return a retriever stub with one passage of context."""
    return StubRetriever(context="Microgravity alters bone density.")


@pytest.fixture
def completion() -> StubCompletion:
    """Return a completion stub streaming a short answer."""
    return StubCompletion(deltas=["Hel", "lo", " world"])


@pytest.fixture
def app(
    chat_config: ChatConfig,
    store: InMemoryMessageStore,
    retriever: StubRetriever,
    completion: StubCompletion,
) -> FastAPI:
    """Create the app with every upstream collaborator replaced.

    Returns:
        FastAPI application wired to the stubs above.
    """
    application = create_app()
    application.dependency_overrides[get_config] = lambda: chat_config
    application.dependency_overrides[get_store] = lambda: store
    application.dependency_overrides[get_retriever] = lambda: retriever
    application.dependency_overrides[get_completion_client] = lambda: completion
    return application


@pytest.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create async HTTP client for API testing.

    Yields:
        Configured AsyncClient for making test requests.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
