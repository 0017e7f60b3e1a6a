"""FastAPI application entry point.

Run with ``uvicorn playbook.app:app``.
"""

import logging
from typing import Annotated

from fastapi import Depends, FastAPI

from playbook.api.chat import router as chat_router
from playbook.api.exceptions import build_exception_handlers
from playbook.api.sessions import router as sessions_router
from playbook.configs.config import get_logging_config
from playbook.infra.db_engine import build_db
from playbook.infra.lifespan import inject
from playbook.infra.logging import setup_logging

logger = logging.getLogger(__name__)


@inject
async def lifespan(
    app: FastAPI,
    _db: Annotated[None, Depends(build_db)],
    _exception_handlers: Annotated[None, Depends(build_exception_handlers)],
):
    """Application lifespan: database engine and exception handlers."""
    logger.info("Starting Agents Playbook assistant")
    yield
    logger.info("Shutting down Agents Playbook assistant")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    setup_logging(get_logging_config())

    app = FastAPI(
        title="Agents Playbook Assistant",
        description="AI-assistant chat pipeline for authoring agent workflows",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(chat_router)
    app.include_router(sessions_router)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
