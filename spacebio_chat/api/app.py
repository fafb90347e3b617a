"""FastAPI application factory and configuration.

Main application entry point with lifespan management, middleware,
error handlers, and router registration.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from spacebio_chat.agent.config import get_chat_config
from spacebio_chat.api.messages import router as messages_router
from spacebio_chat.errors import ChatError
from spacebio_chat.models.schemas import ErrorResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application startup and shutdown lifecycle.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control to the application while it runs.
    """
    # Startup
    logger.info("Starting Space Biology chat API...")
    if missing := get_chat_config().missing_credentials():
        logger.warning(f"Chat streaming disabled until configured; missing: {', '.join(missing)}")
    yield
    # Shutdown
    logger.info("Shutting down Space Biology chat API...")


async def chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
    """Render a ChatError as ``{"error": ...}`` with its status code."""
    body = ErrorResponse(error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Report malformed request bodies as 400 ``{"error": ...}``."""
    logger.info(f"Rejected invalid request to {request.url.path}")
    body = ErrorResponse(error="Invalid message format")
    return JSONResponse(status_code=400, content=body.model_dump())


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    application = FastAPI(
        title="Space Biology Chat API",
        description=(
            "Retrieval-augmented chat over space biology research. "
            "Questions are grounded with passages from a LlamaCloud index and "
            "answered by an Azure OpenAI deployment, streamed as Server-Sent Events."
        ),
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    application.add_exception_handler(ChatError, chat_error_handler)
    application.add_exception_handler(RequestValidationError, validation_error_handler)

    application.include_router(messages_router)

    @application.get("/health")
    async def health_check() -> dict[str, str]:
        """Check service health status."""
        return {"status": "healthy", "service": "spacebio-chat"}

    return application


app = create_app()
