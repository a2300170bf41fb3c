"""Error handler middleware with PII redaction."""

import logging
from typing import Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import settings
from app.services.error_logging_service import error_logging_service

logger = logging.getLogger(__name__)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Turn uncaught exceptions into a 500 response.

    The error is logged with PII redacted. Clients only see details when
    DEBUG is on.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)

        except Exception as exc:
            context = {
                "method": request.method,
                "path": request.url.path,
                "client_host": request.client.host if request.client else None,
            }

            error_logging_service.log_error(logger=logger, error=exc, context=context)

            if settings.DEBUG:
                error_detail = {
                    "error": str(exc),
                    "type": type(exc).__name__,
                    "detail": "An error occurred processing your request",
                }
            else:
                error_detail = {
                    "error": "Internal server error",
                    "detail": "An unexpected error occurred. Please try again later.",
                }

            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=error_detail
            )
