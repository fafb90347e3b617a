"""Chat client: session controller and NiceGUI view.

Responsibilities:
    - Streaming answers over HTTP and decoding SSE frames incrementally
    - Mirroring the persisted conversation after each exchange
    - Refusing sends while one is in flight or history is still loading

The page module holds no business logic; it renders controller state.
"""

from spacebio_chat.ui.session import ChatSessionController, relative_time

__all__ = ["ChatSessionController", "relative_time"]
