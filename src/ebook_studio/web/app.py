"""FastAPI web application for Ebook Studio."""

import logging
import os
from pathlib import Path
from typing import Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from rich.logging import RichHandler

from ebook_studio.web.routes import api_configs, projects

logger = logging.getLogger(__name__)

# Load environment variables from .env file in the project root
project_root = Path(__file__).parent.parent.parent.parent
env_file = project_root / '.env'
load_dotenv(env_file)


def configure_logging(level: Optional[str] = None) -> None:
    """Route log records through Rich."""
    resolved = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=resolved,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


def create_app(store=None, ai_service=None) -> FastAPI:
    """Create the API application.

    ``store`` and ``ai_service`` are built on first use when not supplied.
    """

    app = FastAPI(
        title="Ebook Studio",
        description="AI pipeline for drafting, illustrating and packaging ebooks",
        version="0.1.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.store = store
    app.state.ai_service = ai_service

    @app.on_event("startup")
    async def _ensure_indexes():
        try:
            if app.state.store is not None:
                app.state.store.ensure_indexes()
            else:
                from ebook_studio.db_config import create_tables

                create_tables()
        except Exception as exc:
            logger.error("Failed to ensure database indexes: %s", exc)

    app.include_router(projects.router, prefix="/api/projects", tags=["projects"])
    app.include_router(api_configs.router, prefix="/api/api-configs", tags=["api-configs"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "ebook-studio"}

    return app


app = create_app()


def run_server(host: str = "127.0.0.1", port: int = 8000, reload: bool = False, log_level: str = "info"):
    """Run the FastAPI server."""
    configure_logging(log_level)
    uvicorn.run(
        "ebook_studio.web.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level.lower(),
    )


if __name__ == "__main__":
    run_server()
