"""
Error handling for the HTTP API.

Domain errors map to fixed responses:

    InvalidRangeError       → 422
    LedgerUnavailableError  → 503 {"error": "data unavailable, retry", "retryable": true}
    NotFoundError           → 404
    OrderTransitionError,
    InsufficientBalanceError → 409

Anything else is caught by ErrorHandlerMiddleware, logged with an error_id,
and answered with a generic 500. Internals never reach the client.
"""

import traceback
import uuid

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from rechargepanel.config import settings
from rechargepanel.errors import (
    InsufficientBalanceError,
    InvalidRangeError,
    LedgerUnavailableError,
    NotFoundError,
    OrderTransitionError,
)
from rechargepanel.schemas.stats import StatsUnavailable

logger = structlog.get_logger(__name__)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Outermost middleware. Catches everything the exception handlers did not."""

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            return await call_next(request)

        except Exception as exc:
            error_id = str(uuid.uuid4())

            logger.error(
                "unhandled_exception",
                error_id=error_id,
                path=request.url.path,
                method=request.method,
                error=str(exc),
                traceback=traceback.format_exc(),
            )

            body: dict = {
                "error": "An internal error occurred. Please try again later.",
                "error_id": error_id,
                "status": 500,
            }
            if settings.debug:
                body["debug_hint"] = type(exc).__name__

            return JSONResponse(status_code=500, content=body)


async def _invalid_range(request: Request, exc: InvalidRangeError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"error": str(exc), "retryable": False})


async def _ledger_unavailable(request: Request, exc: LedgerUnavailableError) -> JSONResponse:
    logger.warning("ledger_unavailable_response", path=request.url.path, operation=exc.operation)
    body = StatsUnavailable(operation=exc.operation)
    return JSONResponse(status_code=503, content=body.model_dump(), headers={"Retry-After": "5"})


async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": str(exc)})


async def _conflict(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=409, content={"error": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InvalidRangeError, _invalid_range)
    app.add_exception_handler(LedgerUnavailableError, _ledger_unavailable)
    app.add_exception_handler(NotFoundError, _not_found)
    app.add_exception_handler(OrderTransitionError, _conflict)
    app.add_exception_handler(InsufficientBalanceError, _conflict)
