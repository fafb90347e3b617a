"""Error taxonomy for the chat exchange.

Each error carries the HTTP status used when it surfaces before a streaming
response has begun. Once streaming has started, the same errors are reported
as an in-stream error frame instead.
"""


class ChatError(Exception):
    """Base class for all chat exchange failures."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ClientError(ChatError):
    """Raised when the request is malformed. No side effects occur."""

    status_code = 400


class ConfigurationError(ChatError):
    """Raised when required upstream credentials are missing."""

    status_code = 500


class RetrievalError(ChatError):
    """Raised inside the retriever; always recovered as empty context."""

    status_code = 502


class CompletionError(ChatError):
    """Raised when the completion provider fails or its stream breaks."""

    status_code = 502


class CompletionTimeoutError(CompletionError):
    """Raised when the exchange exceeds its overall deadline."""

    status_code = 504


class PersistenceError(ChatError):
    """Raised when the message store is unavailable."""

    status_code = 500


class NotFoundError(ChatError):
    """Raised when a message lookup finds nothing."""

    status_code = 404
