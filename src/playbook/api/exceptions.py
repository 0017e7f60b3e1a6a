"""Global exception handlers.

Pipeline errors are returned as ``{"detail": ..., "code": ...}`` with a
status chosen by error type; Starlette resolves handlers along the MRO,
so the most specific registration wins.
"""

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from playbook.core.chat.errors import (
    ChatSessionNotFound,
    InvalidApiKey,
    PipelineError,
    PipelineValidationError,
    SessionArchived,
    UpstreamModelError,
    UpstreamTimeout,
)
from playbook.infra.lifespan import get_app

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[PipelineError], int] = {
    PipelineError: 500,
    PipelineValidationError: 400,
    ChatSessionNotFound: 404,
    SessionArchived: 409,
    UpstreamModelError: 502,
    InvalidApiKey: 400,
    UpstreamTimeout: 504,
}


def _handler(status_code: int):
    async def handle(request: Request, exc: Exception) -> JSONResponse:
        code = getattr(exc, "code", PipelineError.code)
        if status_code >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(exc), "code": code},
        )

    return handle


def register_exception_handlers(app: FastAPI) -> None:
    for exc_cls, status_code in STATUS_BY_ERROR.items():
        app.add_exception_handler(exc_cls, _handler(status_code))


async def build_exception_handlers(
    app: Annotated[FastAPI, Depends(get_app)],
) -> AsyncGenerator[None, None]:
    """Lifespan dependency: register custom exception handlers on ``app``."""
    register_exception_handlers(app)
    yield
