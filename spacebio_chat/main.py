"""Application entry point.

Serves the chat API and the NiceGUI chat page. In integrated mode (default)
both share one uvicorn server; in separate mode the page runs on its own
port and reaches the API through API_BASE_URL.
Environment variables are loaded from .env file.
"""

import logging
import os
import subprocess
import sys

from dotenv import load_dotenv

# Load environment variables before any other imports that might need them
load_dotenv()

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Configure root logging from LOG_LEVEL."""
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def run_integrated() -> None:
    """Run the API with the chat page mounted on the same server."""
    import uvicorn
    from nicegui import ui

    from spacebio_chat.api.app import create_app
    from spacebio_chat.ui.chat_page import chat_page  # noqa: F401 - Registers the page

    app = create_app()

    ui.run_with(
        app,
        title="Space Biology AI",
        favicon="🧬",
        storage_secret=os.getenv("NICEGUI_STORAGE_SECRET", "spacebio-chat-secret"),
    )

    port = int(os.getenv("PORT", "8000"))
    logger.info(f"Chat UI and API on http://localhost:{port} (docs at /docs)")

    uvicorn.run(
        app,
        host=os.getenv("HOST", "0.0.0.0"),
        port=port,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


def run_separate() -> None:
    """Run the API (port 8000) and the chat page (port 8080) as two processes."""
    api_proc = subprocess.Popen(
        [
            sys.executable,
            "-m",
            "uvicorn",
            "spacebio_chat.api.app:app",
            "--host",
            os.getenv("HOST", "0.0.0.0"),
            "--port",
            "8000",
        ]
    )
    ui_proc = subprocess.Popen(
        [sys.executable, "-c", "from spacebio_chat.ui.chat_page import main; main()"]
    )
    logger.info("API on http://localhost:8000, chat UI on http://localhost:8080")

    try:
        api_proc.wait()
    except KeyboardInterrupt:
        logger.info("Shutting down servers...")
    finally:
        for proc in (api_proc, ui_proc):
            proc.terminate()
            proc.wait()


def main() -> None:
    """Start the app in the mode selected by RUN_MODE (integrated | separate)."""
    configure_logging()
    mode = os.getenv("RUN_MODE", "integrated").lower()
    logger.info(f"Starting Space Biology chat in {mode} mode")

    if mode == "separate":
        run_separate()
    else:
        run_integrated()


if __name__ == "__main__":
    main()
