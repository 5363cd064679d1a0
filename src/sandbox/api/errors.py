"""Exception handlers that render domain errors as JSON responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from sandbox.exceptions import SandboxError

logger = structlog.get_logger(__name__)


async def sandbox_error_handler(request: Request, exc: SandboxError) -> JSONResponse:
    logger.info(
        "Request rejected",
        path=request.url.path,
        error_code=exc.error_code,
        status_code=exc.status_code,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def register_error_handlers(app: FastAPI) -> None:
    """Map SandboxError subclasses and Protean errors to HTTP responses."""
    register_exception_handlers(app)
    app.add_exception_handler(SandboxError, sandbox_error_handler)
