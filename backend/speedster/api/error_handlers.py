"""Error Handlers — global exception handlers for the Speedster API.

Invariants:
    - SpeedsterError → its http_status with the plain-text message as body
    - Exception (catch-all) → 500, never leaks internal details
    - Content-Type is application/json on every error response

Design Decisions:
    - Two-layer handler: domain (SpeedsterError), catch-all (Exception)
    - Request bodies are decoded by core/decode_request, so Pydantic's
      RequestValidationError never reaches a handler
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import Response

from speedster.core.errors import ErrorSeverity, SpeedsterError

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json"


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_speedster_error_handler(app)
    _register_generic_error_handler(app)


def _register_speedster_error_handler(app: FastAPI) -> None:

    @app.exception_handler(SpeedsterError)
    async def speedster_error_handler(request: Request, exc: SpeedsterError):
        """Handle all Speedster domain/infrastructure errors."""
        log = (
            logger.error
            if exc.severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
            else logger.warning
        )
        log(
            f"SpeedsterError: {exc.message}",
            extra={"error_code": exc.code, "path": request.url.path},
        )
        return Response(
            content=exc.to_response(),
            status_code=exc.http_status,
            media_type=JSON_MEDIA_TYPE,
        )


def _register_generic_error_handler(app: FastAPI) -> None:

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all — never leaks internal details."""
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
        )
        return Response(
            content="Internal Server Error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            media_type=JSON_MEDIA_TYPE,
        )
