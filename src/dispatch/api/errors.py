"""HTTP error mapping for the Dispatch API.

Protean's handlers cover validation (400) and missing objects (404). The
dispatch-specific kinds are registered on top; Starlette picks the handler
of the most specific exception class, so ``InvalidTransition`` wins over
its ``ValidationError`` base.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from dispatch.errors import InvalidTransition, StoreUnavailable

logger = structlog.get_logger(__name__)


async def invalid_transition_handler(request: Request, exc: InvalidTransition) -> JSONResponse:
    return JSONResponse(status_code=409, content={"error": exc.messages})


async def store_unavailable_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
    logger.error(
        "Store rejected write, giving up",
        path=request.url.path,
        attempts=exc.attempts,
        error=str(exc),
    )
    return JSONResponse(
        status_code=503,
        content={"error": str(exc)},
        headers={"Retry-After": "1"},
    )


def register_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(InvalidTransition, invalid_transition_handler)
    app.add_exception_handler(StoreUnavailable, store_unavailable_handler)
