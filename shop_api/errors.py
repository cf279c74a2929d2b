"""
Error taxonomy and the JSON error handlers.

Every failure leaves the API as ``{"error": "<message>"}`` with a status
code taken from the exception class. Stack traces never reach the client.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ShopError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ShopError):
    """Malformed or missing input, or a stock/availability conflict."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid payload"


class InvalidState(ShopError):
    """Operation not allowed in the current state (e.g. empty cart)."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid state"


class Conflict(ShopError):
    """Duplicate resource. Reported as 400 to match the registration contract."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Resource already exists"


class Unauthorized(ShopError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class NotFound(ShopError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class PersistenceError(ShopError):
    """A store operation failed or a transaction was rolled back."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Database error"


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def shop_error_handler(request: Request, exc: ShopError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Request failed", extra={
            "path": request.url.path,
            "error_type": type(exc).__name__,
            "error": exc.message,
        })
    return error_response(exc.status_code, exc.message)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Rejected invalid payload", extra={
        "path": request.url.path,
        "errors": len(exc.errors()),
    })
    return error_response(status.HTTP_400_BAD_REQUEST, "Invalid payload")


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error", extra={
        "path": request.url.path,
        "error": str(exc),
    })
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Database error")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", extra={"path": request.url.path})
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the JSON error handlers to the application."""
    app.add_exception_handler(ShopError, shop_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
