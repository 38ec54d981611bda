"""API middleware: CORS, request logging, and error handling.

Starlette middleware is a stack (last added runs first).  In
``docsearch/main.py``::

    app.add_middleware(ErrorHandlingMiddleware)   # inner
    app.add_middleware(RequestLoggingMiddleware)  # outer

so the request log records the status code produced after errors were
mapped to JSON.
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from docsearch.api.schemas import ErrorResponse
from docsearch.utils.errors import (
    ConfigurationError,
    DocSearchError,
    ProviderCallError,
    SchemaMissingError,
)
from docsearch.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

# First match wins; order subclasses before their bases.
_STATUS_BY_ERROR: tuple[tuple[type[DocSearchError], int], ...] = (
    (ConfigurationError, 400),
    (SchemaMissingError, 503),
    (ProviderCallError, 502),
)


def status_code_for(exc: DocSearchError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return 500


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware; all origins are allowed unless listed explicitly."""
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration.

    For streaming responses the duration covers the time to first byte,
    not the whole stream.
    """

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


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Convert ``DocSearchError`` subclasses into JSON ``ErrorResponse`` bodies.

    Configuration problems map to 400, a missing schema to 503, provider
    failures to 502 and everything else to 500.  Only the error class and
    message reach the client; stack traces stay in the logs.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except DocSearchError as exc:
            status_code = status_code_for(exc)
            _logger.error(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
                status=status_code,
            )
            body = ErrorResponse(
                error=type(exc).__name__,
                detail=exc.message,
            )
            return JSONResponse(
                status_code=status_code,
                content=body.model_dump(),
            )
