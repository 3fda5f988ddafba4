"""API middleware: CORS, request logging, and error handling.

Starlette middleware is a stack (last added, first executed).  In
``main.py`` ErrorHandlingMiddleware is added before RequestLoggingMiddleware,
so request logging sees the final status code even when an error was
converted into a JSON body.
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from artist_images.api.schemas import ErrorResponse
from artist_images.utils.errors import ArtistImageError
from artist_images.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

_ALLOWED_METHODS = ["GET", "OPTIONS"]
_ALLOWED_HEADERS = ["Content-Type"]

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": ", ".join(_ALLOWED_METHODS),
    "Access-Control-Allow-Headers": ", ".join(_ALLOWED_HEADERS),
}


class OptionsMiddleware(BaseHTTPMiddleware):
    """Answer every ``OPTIONS`` request with an empty 200.

    Browser preflights (``Origin`` plus ``Access-Control-Request-Method``)
    are answered by CORSMiddleware before reaching this one; what arrives
    here is a bare ``OPTIONS`` from a client or load balancer check.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=_CORS_HEADERS)
        return await call_next(request)


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Allow browsers on any origin (or *allowed_origins*) to call the API.

    The service is read-only, so only ``GET`` and ``OPTIONS`` are allowed.
    """
    # Added first so CORSMiddleware wraps it and sees preflights first.
    app.add_middleware(OptionsMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins or ["*"],
        allow_methods=_ALLOWED_METHODS,
        allow_headers=_ALLOWED_HEADERS,
    )


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


_HEALTH_PATHS = frozenset({"/health"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Emit one ``http_request`` event per request.

    The requested artist name (``?name=``) is bound to the structlog
    context for the duration of the request, so resolver and provider
    events carry it without threading it through every call.  Health
    checks are logged at DEBUG to keep them out of production logs.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        path = request.url.path
        context = {"path": path}
        # Raw query value; the resolver does its own trimming.
        if "name" in request.query_params:
            context["artist"] = request.query_params["name"]

        started = time.perf_counter()
        # Reported when call_next raises past ErrorHandlingMiddleware.
        status = 500
        with structlog.contextvars.bound_contextvars(**context):
            try:
                response = await call_next(request)
                status = response.status_code
                return response
            finally:
                # Still inside bound_contextvars, so the event carries path and artist.
                log = _logger.debug if path in _HEALTH_PATHS else _logger.info
                log(
                    "http_request",
                    method=request.method,
                    status=status,
                    duration_ms=round((time.perf_counter() - started) * 1000, 2),
                )


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turn ``ArtistImageError`` subclasses that escape a route into JSON 500s.

    Routes handle the expected errors (invalid input, source unavailable)
    themselves; anything reaching this middleware is unexpected.  Details
    are logged server-side, the client gets the error type and message only.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        # Non-domain exceptions propagate to Starlette's default 500 handler.
        try:
            return await call_next(request)
        except ArtistImageError as exc:
            error_type = type(exc).__name__
            # path and artist come from the request logging context.
            _logger.error("unhandled_service_error", error_type=error_type, error=str(exc))
            # Message only; provider internals stay in the log.
            return JSONResponse(
                status_code=500,
                content=ErrorResponse(error=error_type, detail=exc.message).model_dump(),
            )
