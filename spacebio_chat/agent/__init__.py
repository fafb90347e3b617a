"""Chat pipeline: retrieval, completion streaming and orchestration.

Responsibilities:
    - LlamaCloud passage retrieval with graceful degradation
    - Prompt assembly from retrieved context and conversation history
    - Azure OpenAI token streaming
    - Ordering one exchange: store question, stream answer, store answer

Maintains clean separation from the HTTP layer.
"""

from spacebio_chat.agent.completion import CompletionStreamClient, build_prompt
from spacebio_chat.agent.config import ChatConfig, get_chat_config
from spacebio_chat.agent.orchestrator import (
    OrchestratorState,
    PreparedExchange,
    StreamOrchestrator,
)
from spacebio_chat.agent.retriever import ContextRetriever

__all__ = [
    "ChatConfig",
    "CompletionStreamClient",
    "ContextRetriever",
    "OrchestratorState",
    "PreparedExchange",
    "StreamOrchestrator",
    "build_prompt",
    "get_chat_config",
]
