"""API middleware: CORS, request logging, and error handling.

Starlette middleware is a stack (last added, first executed).  ``main.py``
adds :class:`ErrorHandlingMiddleware` before :class:`RequestLoggingMiddleware`
so the logger sees the final status code, including structured errors::

    Client -> RequestLogging -> ErrorHandling -> route handler
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from seedflow.api.schemas import ErrorResponse
from seedflow.utils.errors import SeedflowError, UserFacingError
from seedflow.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware.  Defaults to ``["*"]`` for development."""
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = response.status_code if response else 500
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=status_code,
                duration_ms=duration_ms,
            )


def status_for(exc: SeedflowError) -> int:
    """Map an application error onto an HTTP status code.

    User-facing errors the user can act on are 422; retryable ones point
    at an upstream service and are 502.  Anything else is a 500.
    """
    if isinstance(exc, UserFacingError):
        return 502 if exc.retryable else 422
    return 500


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Convert ``SeedflowError`` subclasses into :class:`ErrorResponse` bodies.

    User-facing errors carry their pre-authored ``user_message`` to the
    client.  Every other application error is reduced to its class name so
    internal details stay in the logs.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except SeedflowError as exc:
            status_code = status_for(exc)
            _logger.error(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
                status=status_code,
            )
            if isinstance(exc, UserFacingError):
                body = ErrorResponse(
                    error=type(exc).__name__,
                    detail=exc.user_message,
                    retryable=exc.retryable,
                )
            else:
                body = ErrorResponse(error=type(exc).__name__)
            return JSONResponse(status_code=status_code, content=body.model_dump())
