"""
Error handling for the HTTP layer

- Domain errors (ERPBaseError) → mapped status code with stable code/message
- Unhandled exceptions → logged with traceback, generic message to client
- Database driver details are never returned outside DEBUG
"""
import logging
import traceback
from typing import Union

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from bikeshop_backend.core.config import settings
from bikeshop_backend.core.exceptions import (
    ERPBaseError,
    AlertNotFoundError,
    AlertValidationError,
    MovementNotFoundError,
    ProductNotFoundError,
    StockValidationError,
)

logger = logging.getLogger(__name__)

# Patterns that indicate internal/sensitive error information
SENSITIVE_PATTERNS = [
    "password",
    "secret",
    "credential",
    "sqlalchemy",
    "asyncpg",
    "postgresql",
    "sqlite",
    "traceback",
    "file \"",
]

# Most specific class first
ERROR_STATUS_CODES = [
    (AlertNotFoundError, 404),
    (ProductNotFoundError, 404),
    (MovementNotFoundError, 404),
    (AlertValidationError, 400),
    (StockValidationError, 400),
]


def is_sensitive_error(message: str) -> bool:
    """Check if error message contains sensitive information."""
    message_lower = message.lower()
    return any(pattern in message_lower for pattern in SENSITIVE_PATTERNS)


def sanitize_error_message(error: Union[str, Exception]) -> str:
    """Sanitize an error message for safe client exposure."""
    message = error if isinstance(error, str) else str(error)

    if settings.DEBUG:
        return message

    if is_sensitive_error(message):
        return "An internal error occurred. Please try again later."

    if len(message) > 200:
        return message[:200] + "..."

    return message


def status_code_for(error: ERPBaseError) -> int:
    for error_class, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_class):
            return status_code
    return 500


async def erp_error_handler(request: Request, exc: ERPBaseError) -> JSONResponse:
    """Translate domain errors into JSON responses."""
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.to_dict()}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.code} - {exc.message}")

    return JSONResponse(
        status_code=status_code,
        content={
            "error": exc.code,
            "message": sanitize_error_message(exc.message),
        },
    )


class ErrorSanitizationMiddleware(BaseHTTPMiddleware):
    """
    Catch unhandled exceptions and sanitize error responses.

    - In production: Returns generic error, logs full details
    - In development: Returns full error for debugging
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except HTTPException:
            raise
        except Exception as e:
            error_id = f"{request.client.host if request.client else 'unknown'}-{id(e)}"
            logger.error(
                f"Unhandled exception [{error_id}]: {type(e).__name__}: {str(e)}\n"
                f"Path: {request.url.path}\n"
                f"Method: {request.method}\n"
                f"Traceback:\n{traceback.format_exc()}"
            )

            content = {
                "error": "internal_error",
                "message": "An unexpected error occurred. Please try again later.",
                "error_id": error_id,
            }
            if settings.DEBUG:
                content["message"] = str(e)
                content["type"] = type(e).__name__
            return JSONResponse(status_code=500, content=content)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ERPBaseError, erp_error_handler)
    app.add_middleware(ErrorSanitizationMiddleware)
