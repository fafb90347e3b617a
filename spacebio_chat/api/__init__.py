"""FastAPI endpoints for the Space Biology chat.

HTTP and streaming routes with async request handling.
Supports Server-Sent Events for real-time answer streaming.

Endpoints:
    - GET /health: Service health status
    - GET /messages: Conversation history
    - POST /messages/stream: Streamed chat exchange
    - DELETE /messages: Clear the conversation
"""

from spacebio_chat.api.app import app, create_app

__all__ = ["app", "create_app"]
