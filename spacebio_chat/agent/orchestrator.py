"""Stream orchestrator: one chat exchange from user message to stored answer.

Sequence for a single exchange:

    IDLE -> PERSISTING_USER_MSG -> RETRIEVING_CONTEXT -> STREAMING
         -> PERSISTING_ANSWER -> DONE

with ERROR reachable from every non-terminal state.

The exchange is split in two phases so the HTTP layer can pick the right
failure surface:

1. ``prepare()`` runs everything up to and including opening the provider
   stream. Failures raise typed ``ChatError`` subclasses, which become plain
   JSON error responses because no streaming response exists yet.
2. ``frames()`` is the async generator used as the streaming body. It
   forwards each delta before asking for the next one, and reports failures
   as a single error frame. The answer is stored only after the provider
   stream ends normally; an error or a client disconnect discards it.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import ValidationError

from spacebio_chat.agent.completion import CompletionStreamClient, build_prompt
from spacebio_chat.agent.config import ChatConfig
from spacebio_chat.agent.retriever import ContextRetriever
from spacebio_chat.errors import (
    ChatError,
    ClientError,
    CompletionTimeoutError,
    PersistenceError,
)
from spacebio_chat.models.schemas import ChatTurn, Message, MessageCreate, MessageRole
from spacebio_chat.storage.base import MessageStore
from spacebio_chat.streaming.sse import encode_delta, encode_done, encode_error

logger = logging.getLogger(__name__)

DisconnectProbe = Callable[[], Awaitable[bool]]


class OrchestratorState(str, Enum):
    """Lifecycle of a single exchange."""

    IDLE = "idle"
    PERSISTING_USER_MSG = "persisting_user_msg"
    RETRIEVING_CONTEXT = "retrieving_context"
    STREAMING = "streaming"
    PERSISTING_ANSWER = "persisting_answer"
    DONE = "done"
    ERROR = "error"


@dataclass
class PreparedExchange:
    """Everything needed to stream an answer once the provider accepted the request.

    Attributes:
        user_message: The stored user message.
        prompt: Turns sent to the provider.
        deltas: Open provider stream.
        deadline: Event-loop time after which the exchange is aborted.
    """

    user_message: Message
    prompt: list[ChatTurn]
    deltas: AsyncIterator[str]
    deadline: float


async def _next_delta(deltas: AsyncIterator[str]) -> str:
    return await deltas.__anext__()


class StreamOrchestrator:
    """Runs one chat exchange. Create a new instance per request.

    Args:
        store: Message store holding the conversation.
        retriever: LlamaCloud context client.
        completion: Azure OpenAI streaming client.
        config: Chat configuration.
    """

    def __init__(
        self,
        store: MessageStore,
        retriever: ContextRetriever,
        completion: CompletionStreamClient,
        config: ChatConfig,
    ) -> None:
        self._store = store
        self._retriever = retriever
        self._completion = completion
        self._config = config
        self.state = OrchestratorState.IDLE

    def _transition(self, state: OrchestratorState) -> None:
        logger.debug(f"Exchange state {self.state.value} -> {state.value}")
        self.state = state

    @staticmethod
    def _remaining(deadline: float) -> float:
        return max(deadline - asyncio.get_running_loop().time(), 0.0)

    async def _with_deadline(self, awaitable: Awaitable[Any], deadline: float) -> Any:
        try:
            return await asyncio.wait_for(awaitable, self._remaining(deadline))
        except TimeoutError as e:
            raise CompletionTimeoutError("Request timed out") from e

    async def _persist(self, role: MessageRole, content: str) -> Message:
        try:
            return await self._store.append(role, content)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to store {role.value} message: {e}") from e

    async def _snapshot(self) -> list[Message]:
        try:
            return await self._store.list()
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to load conversation: {e}") from e

    async def _retrieve(self, query: str, deadline: float) -> str:
        budget = min(self._config.retrieval_timeout, self._remaining(deadline))
        try:
            return await asyncio.wait_for(
                self._retriever.retrieve(query, timeout=budget), budget
            )
        except TimeoutError:
            logger.warning("Context retrieval timed out, continuing without context")
            return ""
        except Exception as e:
            logger.warning(
                f"Context retrieval raised {type(e).__name__}, continuing without context: {e}"
            )
            return ""

    async def prepare(self, request: MessageCreate | dict[str, Any]) -> PreparedExchange:
        """Validate, store the user message, gather context and open the stream.

        Args:
            request: Validated payload or raw JSON body.

        Returns:
            A PreparedExchange ready for ``frames()``.

        Raises:
            ClientError: Invalid request; nothing was stored.
            ConfigurationError: Missing credentials; nothing was stored.
            PersistenceError: The store failed.
            CompletionError: The provider refused the request or timed out.
        """
        deadline = asyncio.get_running_loop().time() + self._config.request_timeout
        try:
            if not isinstance(request, MessageCreate):
                try:
                    request = MessageCreate.model_validate(request)
                except ValidationError as e:
                    raise ClientError("Invalid message format") from e
            self._config.require_credentials()

            self._transition(OrchestratorState.PERSISTING_USER_MSG)
            user_message = await self._persist(MessageRole.USER, request.content)

            self._transition(OrchestratorState.RETRIEVING_CONTEXT)
            context = await self._retrieve(request.content, deadline)

            # Snapshot after the append so the new question is part of the prompt
            history = await self._snapshot()
            prompt = build_prompt(context, history, self._config.max_history_messages)
            deltas = await self._with_deadline(self._completion.stream(prompt), deadline)
        except ChatError as e:
            logger.warning(f"Exchange failed before streaming: {e.message}")
            self._transition(OrchestratorState.ERROR)
            raise

        return PreparedExchange(
            user_message=user_message,
            prompt=prompt,
            deltas=deltas,
            deadline=deadline,
        )

    async def frames(
        self,
        exchange: PreparedExchange,
        disconnected: DisconnectProbe | None = None,
    ) -> AsyncIterator[str]:
        """Forward provider deltas as SSE frames and store the final answer.

        Args:
            exchange: Result of ``prepare()``.
            disconnected: Optional probe returning True once the client is gone.

        Yields:
            Encoded frames: deltas, then either ``[DONE]`` or one error frame.
        """
        self._transition(OrchestratorState.STREAMING)
        deltas = exchange.deltas
        parts: list[str] = []
        try:
            while True:
                if disconnected is not None and await disconnected():
                    logger.info("Client disconnected, dropping partial answer")
                    self._transition(OrchestratorState.ERROR)
                    return
                try:
                    delta = await self._with_deadline(_next_delta(deltas), exchange.deadline)
                except StopAsyncIteration:
                    break
                parts.append(delta)
                yield encode_delta(delta)

            self._transition(OrchestratorState.PERSISTING_ANSWER)
            await self._persist(MessageRole.ASSISTANT, "".join(parts))
        except ChatError as e:
            logger.error(f"Streaming error: {e.message}")
            self._transition(OrchestratorState.ERROR)
            yield encode_error(e.message)
            return
        except (asyncio.CancelledError, GeneratorExit):
            logger.info("Output channel closed, dropping partial answer")
            self._transition(OrchestratorState.ERROR)
            raise
        except Exception as e:
            logger.exception(f"Unexpected streaming error: {e}")
            self._transition(OrchestratorState.ERROR)
            yield encode_error(str(e) or "Stream failed")
            return
        finally:
            aclose = getattr(deltas, "aclose", None)
            if aclose is not None:
                await aclose()

        self._transition(OrchestratorState.DONE)
        yield encode_done()

    async def run(
        self,
        request: MessageCreate | dict[str, Any],
        disconnected: DisconnectProbe | None = None,
    ) -> AsyncIterator[str]:
        """Run a full exchange in-process, yielding encoded frames.

        Errors raised by ``prepare()`` propagate before the first frame.
        """
        exchange = await self.prepare(request)
        async for frame in self.frames(exchange, disconnected):
            yield frame
