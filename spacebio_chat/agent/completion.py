"""Azure OpenAI streaming completion client and prompt assembly.

The client exposes the provider stream as a plain async iterator of text
deltas, so callers can read it in a straight loop and close it early.
"""

import logging
from collections.abc import AsyncIterator, Sequence

import httpx
import openai
from openai import AsyncAzureOpenAI

from spacebio_chat.agent.config import ChatConfig
from spacebio_chat.errors import CompletionError
from spacebio_chat.models.schemas import ChatTurn, Message, MessageRole

logger = logging.getLogger(__name__)

GENERIC_INSTRUCTION = "You are a helpful assistant."
CONTEXT_INSTRUCTION = (
    "You are a helpful assistant. "
    "Use the following context to answer the user's questions:\n\n{context}"
)


def build_prompt(
    context: str,
    history: Sequence[Message],
    max_history_messages: int | None = None,
) -> list[ChatTurn]:
    """Assemble the provider message list.

    Args:
        context: Retrieved passage text. Empty selects the generic instruction.
        history: Conversation snapshot in chronological order.
        max_history_messages: Keep only the most recent N turns when set.

    Returns:
        A system turn followed by the conversation turns.
    """
    if context:
        system = ChatTurn(role="system", content=CONTEXT_INSTRUCTION.format(context=context))
    else:
        system = ChatTurn(role="system", content=GENERIC_INSTRUCTION)

    turns = list(history)
    if max_history_messages is not None:
        turns = turns[-max_history_messages:]

    return [system] + [
        ChatTurn(
            role="assistant" if msg.role == MessageRole.ASSISTANT else "user",
            content=msg.content,
        )
        for msg in turns
    ]


class CompletionStreamClient:
    """Streams chat completions from an Azure OpenAI deployment.

    No retries happen here; a failed stream fails the exchange.

    Args:
        config: Chat configuration with Azure credentials.
        client: Optional pre-built SDK client (used by tests).
    """

    def __init__(self, config: ChatConfig, client: AsyncAzureOpenAI | None = None) -> None:
        self._config = config
        self._client = client

    def _get_client(self) -> AsyncAzureOpenAI:
        if self._client is None:
            self._client = AsyncAzureOpenAI(
                api_key=self._config.azure_api_key,
                azure_endpoint=self._config.azure_endpoint,
                api_version=self._config.azure_api_version,
                timeout=self._config.request_timeout,
                max_retries=0,
            )
        return self._client

    async def stream(self, messages: Sequence[ChatTurn]) -> AsyncIterator[str]:
        """Open the provider stream and return an iterator of deltas.

        The request is sent before this returns, so a provider refusal
        surfaces here rather than on the first read.

        Args:
            messages: Ordered prompt turns.

        Returns:
            Async iterator of non-empty text deltas.

        Raises:
            CompletionError: If the provider rejects the request.
        """
        try:
            response = await self._get_client().chat.completions.create(
                model=self._config.azure_deployment,
                messages=[turn.model_dump() for turn in messages],
                stream=True,
                temperature=self._config.temperature,
            )
        except openai.OpenAIError as e:
            logger.error(f"Completion request failed: {e}")
            raise CompletionError(str(e)) from e

        return self._iter_deltas(response)

    async def _iter_deltas(self, response: openai.AsyncStream) -> AsyncIterator[str]:
        try:
            async for chunk in response:
                choice = chunk.choices[0] if chunk.choices else None
                if choice is None or choice.delta is None:
                    continue
                if content := choice.delta.content:
                    yield content
        except (openai.OpenAIError, httpx.HTTPError) as e:
            raise CompletionError(str(e)) from e
        finally:
            await response.close()
