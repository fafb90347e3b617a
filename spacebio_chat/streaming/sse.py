"""Server-Sent Events framing for the chat token stream.

Wire format, one frame per event:

    data: {"text": "Hel"}\\n\\n
    data: {"error": "Stream failed"}\\n\\n
    data: [DONE]\\n\\n

The decoder is written as a pure fold, ``decode(state, chunk) -> (state,
events)``, so it can be fed network chunks split at any byte offset and
tested without any I/O.
"""

import json
import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


# === Encoder ===


def _frame(payload: str) -> str:
    return f"{DATA_PREFIX}{payload}\n\n"


def encode_delta(text: str) -> str:
    """Encode one text delta as an SSE frame."""
    return _frame(json.dumps({"text": text}))


def encode_error(message: str) -> str:
    """Encode an error as an SSE frame."""
    return _frame(json.dumps({"error": message}))


def encode_done() -> str:
    """Encode the terminal sentinel frame."""
    return _frame(DONE_SENTINEL)


# === Decoder ===


@dataclass(frozen=True)
class DeltaEvent:
    """A fragment of answer text."""

    text: str


@dataclass(frozen=True)
class ErrorEvent:
    """An error reported by the server inside the stream."""

    message: str


@dataclass(frozen=True)
class DoneEvent:
    """The stream completed successfully."""


StreamEvent = DeltaEvent | ErrorEvent | DoneEvent


@dataclass(frozen=True)
class DecoderState:
    """Decoder state carried between reads.

    Attributes:
        buffer: Bytes after the last complete line, kept until more data arrives.
        done: Whether the terminal sentinel has been seen.
    """

    buffer: bytes = b""
    done: bool = False


def _parse_line(line: str) -> StreamEvent | None:
    """Turn one complete line into an event, or None to skip it."""
    if not line.startswith(DATA_PREFIX):
        return None

    data = line[len(DATA_PREFIX):]
    if data.strip() == DONE_SENTINEL:
        return DoneEvent()

    try:
        payload = json.loads(data)
    except json.JSONDecodeError:
        # Incomplete or garbled payloads are skipped, not fatal
        return None
    if not isinstance(payload, dict):
        return None

    if text := payload.get("text"):
        return DeltaEvent(text=str(text))
    if error := payload.get("error"):
        return ErrorEvent(message=str(error))
    return None


def decode(state: DecoderState, chunk: bytes) -> tuple[DecoderState, list[StreamEvent]]:
    """Consume a chunk of raw bytes.

    Only complete lines are parsed; the trailing partial line (which may end
    mid UTF-8 sequence) stays in the returned state's buffer. Once the
    sentinel is seen, remaining and future input is ignored.

    Args:
        state: State returned by the previous call (or a fresh DecoderState()).
        chunk: Bytes received from the network.

    Returns:
        The new state and the events completed by this chunk, in order.
    """
    if state.done:
        return state, []

    buffer = state.buffer + chunk
    *lines, remainder = buffer.split(b"\n")

    events: list[StreamEvent] = []
    for raw in lines:
        line = raw.rstrip(b"\r").decode("utf-8", errors="replace")
        event = _parse_line(line)
        if event is None:
            continue
        events.append(event)
        if isinstance(event, DoneEvent):
            return DecoderState(buffer=b"", done=True), events

    return DecoderState(buffer=remainder, done=False), events


@dataclass
class StreamDecoder:
    """Stateful convenience wrapper around :func:`decode`.

    Accumulates delta text and error messages across ``feed`` calls.
    """

    state: DecoderState = field(default_factory=DecoderState)
    text: str = ""
    errors: list[str] = field(default_factory=list)

    @property
    def done(self) -> bool:
        return self.state.done

    def feed(self, chunk: bytes) -> list[StreamEvent]:
        """Decode a chunk, update accumulated text, and return its events."""
        self.state, events = decode(self.state, chunk)
        for event in events:
            if isinstance(event, DeltaEvent):
                self.text += event.text
            elif isinstance(event, ErrorEvent):
                logger.warning(f"Stream error: {event.message}")
                self.errors.append(event.message)
        return events
