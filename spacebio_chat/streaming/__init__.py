"""Wire protocol for streamed answers.

Responsibilities:
    - Encoding deltas, errors and completion as SSE frames (server side)
    - Incremental decoding of arbitrarily split byte chunks (client side)
"""

from spacebio_chat.streaming.sse import (
    DecoderState,
    DeltaEvent,
    DoneEvent,
    ErrorEvent,
    StreamDecoder,
    StreamEvent,
    decode,
    encode_delta,
    encode_done,
    encode_error,
)

__all__ = [
    "DecoderState",
    "DeltaEvent",
    "DoneEvent",
    "ErrorEvent",
    "StreamDecoder",
    "StreamEvent",
    "decode",
    "encode_delta",
    "encode_done",
    "encode_error",
]
