"""Client-side chat session controller.

Holds the state the chat page renders and talks to the API over HTTP:

    - messages: mirror of the server's persisted conversation
    - streaming_text: the answer being streamed, never shown as persisted
    - busy: a send is in flight; further sends are refused
    - ready: the initial history load finished; sends are refused until then
    - clearing: a reset is in flight; sends are refused until it resolves

Listeners registered with ``subscribe`` are called after every change.
"""

import logging
import os
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import httpx

from spacebio_chat.models.schemas import Message
from spacebio_chat.streaming.sse import DeltaEvent, StreamDecoder

logger = logging.getLogger(__name__)

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")


class StreamFailedError(Exception):
    """Raised when a streamed exchange does not complete."""


def _error_message(response: httpx.Response) -> str:
    try:
        return str(response.json()["error"])
    except (ValueError, KeyError, TypeError):
        return f"HTTP {response.status_code}"


def relative_time(timestamp: datetime, now: datetime | None = None) -> str:
    """Format a timestamp as a short relative label ("just now", "5 min ago")."""
    now = now or datetime.now(UTC)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=UTC)
    seconds = int((now - timestamp).total_seconds())

    if seconds < 60:
        return "just now"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes} min ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"


class ChatSessionController:
    """Drives a single conversation against the chat API.

    Args:
        base_url: API base URL. Defaults to API_BASE_URL.
        client: Optional shared httpx client (tests pass an ASGI-backed one).
        timeout: Per-request timeout when the controller creates its own client.
    """

    def __init__(
        self,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 120.0,
    ) -> None:
        self._base_url = base_url or API_BASE_URL
        self._client = client
        self._timeout = timeout
        self._listeners: list[Callable[[], None]] = []

        self.messages: list[Message] = []
        self.streaming_text: str = ""
        self.busy: bool = False
        self.clearing: bool = False
        self.ready: bool = False
        self.last_error: str | None = None

    @property
    def can_send(self) -> bool:
        return self.ready and not self.busy and not self.clearing

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register a change listener.

        Returns:
            A callable that removes the listener.
        """
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    @asynccontextmanager
    async def _http(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout) as client:
            yield client

    async def refresh(self) -> None:
        """Re-fetch the persisted conversation."""
        async with self._http() as client:
            response = await client.get("/messages")
            response.raise_for_status()
        self.messages = [Message.model_validate(item) for item in response.json()]
        self._notify()

    async def load_history(self) -> None:
        """Start a fresh conversation: clear server history, then re-fetch.

        Sends stay disabled until this resolves, even when it fails.
        """
        self.ready = False
        self._notify()
        try:
            async with self._http() as client:
                response = await client.delete("/messages")
                response.raise_for_status()
            await self.refresh()
        except httpx.HTTPError as e:
            logger.error(f"Failed to clear messages on load: {e}")
            self.last_error = f"Failed to load history: {e}"
        finally:
            self.ready = True
            self._notify()

    async def clear(self) -> bool:
        """Clear the conversation.

        Refused while a send is in flight. Sends are refused until the
        reset has been re-fetched.
        """
        if self.busy or self.clearing:
            return False

        self.clearing = True
        self._notify()
        try:
            async with self._http() as client:
                response = await client.delete("/messages")
                response.raise_for_status()
            await self.refresh()
        except httpx.HTTPError as e:
            logger.error(f"Failed to clear messages: {e}")
            self.last_error = f"Failed to clear messages: {e}"
            return False
        finally:
            self.clearing = False
            self._notify()
        return True

    async def _stream(self, client: httpx.AsyncClient, content: str) -> StreamDecoder:
        decoder = StreamDecoder()
        async with client.stream(
            "POST",
            "/messages/stream",
            json={"role": "user", "content": content},
            headers={"Accept": "text/event-stream"},
        ) as response:
            if response.is_error:
                await response.aread()
                raise StreamFailedError(_error_message(response))

            async for chunk in response.aiter_bytes():
                for event in decoder.feed(chunk):
                    if isinstance(event, DeltaEvent):
                        self.streaming_text += event.text
                        self._notify()
                if decoder.done:
                    break
        return decoder

    async def send(self, content: str) -> bool:
        """Send a user message and stream the answer.

        On completion the streamed text is dropped and the persisted
        conversation is re-fetched, so the answer appears with its stored
        identity. On failure the persisted list is left as it was and the
        partial answer is discarded; the reason is kept in ``last_error``.

        Args:
            content: The user's question.

        Returns:
            False when the send was refused (busy, clearing, not ready, or blank),
            True once an accepted send has finished, successfully or not.
        """
        text = content.strip()
        if not text or not self.can_send:
            return False

        self.busy = True
        self.streaming_text = ""
        self.last_error = None
        self._notify()

        try:
            async with self._http() as client:
                decoder = await self._stream(client, text)
            if not decoder.done:
                reason = decoder.errors[-1] if decoder.errors else "Stream ended unexpectedly"
                raise StreamFailedError(reason)

            self.streaming_text = ""
            await self.refresh()
        except (httpx.HTTPError, StreamFailedError) as e:
            logger.warning(f"Error sending message: {e}")
            self.last_error = str(e)
            self.streaming_text = ""
        finally:
            self.busy = False
            self._notify()
        return True
