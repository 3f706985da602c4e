"""Translate domain and storage errors into JSON error responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from hydration.core.db_client import DatabaseError
from hydration.core.errors import ErrorCode, ErrorResponse, HydrationError


logger = logging.getLogger(__name__)


def _error_response(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def handle_hydration_error(request: Request, exc: HydrationError) -> JSONResponse:
    logger.info(
        "Request rejected",
        extra={"path": request.url.path, "code": exc.code, "error": exc.message, "severity": exc.severity.value},
    )
    return _error_response(exc.status_code, exc.to_response())


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies get the same envelope as missing fields."""
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"Invalid request: {location} {first.get('msg', '')}".strip()
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        ErrorResponse(error=message, code=ErrorCode.ERR_VALIDATION),
    )


async def handle_database_error(request: Request, exc: DatabaseError) -> JSONResponse:
    logger.error("Storage failure", extra={"path": request.url.path, "error": str(exc)})
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorResponse(error="Storage error", code=ErrorCode.ERR_STORAGE),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", extra={"path": request.url.path, "error": str(exc)})
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorResponse(error="Internal server error", code=ErrorCode.ERR_UNKNOWN),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error handlers on ``app``."""
    app.add_exception_handler(HydrationError, handle_hydration_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(DatabaseError, handle_database_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
