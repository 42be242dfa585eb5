"""Translate service exceptions into JSON error responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from weather_api.errors import (
    AuthenticationError,
    NotFoundError,
    StorageError,
    UpstreamError,
    WeatherServiceError,
)

logger = logging.getLogger(__name__)


def _error_body(code: int, message: str, details=None) -> dict:
    body = {"code": code, "message": message}
    if details:
        body["details"] = details
    return body


async def service_error_handler(request: Request, exc: WeatherServiceError) -> JSONResponse:
    endpoint = f"{request.method} {request.url.path}"

    if isinstance(exc, NotFoundError):
        logger.info(f"{endpoint}: {exc.message}")
        message = exc.message
    elif isinstance(exc, AuthenticationError):
        logger.info(f"{endpoint}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.status_code, exc.message),
            headers={"WWW-Authenticate": "Bearer"},
        )
    elif isinstance(exc, UpstreamError):
        logger.error(f"{endpoint}: weather provider error: {exc.message}")
        message = "Failed to fetch weather data"
    elif isinstance(exc, StorageError):
        logger.error(f"{endpoint}: storage error: {exc.message}", exc_info=exc.__cause__)
        message = "Failed to access weather data"
    else:
        logger.error(f"{endpoint}: {exc.message}")
        message = "Internal server error"

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.status_code, message, exc.details),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"] if part not in ("body", "query", "path"))
        details[field or "body"] = error["msg"]

    logger.info(f"Invalid request data for {request.method} {request.url.path}: {details}")
    return JSONResponse(status_code=400, content=_error_body(400, "Invalid request data", details))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error for {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content=_error_body(500, "Internal server error"))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(WeatherServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
