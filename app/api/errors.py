"""Domain errors and the exception -> HTTP status table.

Handlers render ``{"error": "<reason phrase>"}`` with the mapped status.
Anything not in ``ERROR_STATUS_MAP`` is left to the framework's default
(uncaught) handling.
"""

from __future__ import annotations

__all__ = [
    "AppError",
    "ERROR_STATUS_MAP",
    "InvalidAuthenticityTokenError",
    "MalformedInputError",
    "NotFoundError",
    "NotPermittedError",
    "RaceConditionError",
    "RateLimitExceededError",
    "ServiceOverloadedError",
    "UnacceptableFormatError",
    "UpstreamNetworkError",
    "UpstreamStorageError",
    "error_response",
    "install_error_handlers",
    "status_for_exception",
]

import ssl
from collections.abc import Mapping
from http import HTTPStatus

import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


class AppError(Exception):
    """Base class for errors the service knows how to answer."""


class MalformedInputError(AppError):
    pass


class NotPermittedError(AppError):
    pass


class NotFoundError(AppError):
    pass


class UnacceptableFormatError(AppError):
    pass


class InvalidAuthenticityTokenError(AppError):
    pass


class RateLimitExceededError(AppError):
    pass


class UpstreamNetworkError(AppError):
    pass


class UpstreamStorageError(AppError):
    pass


class RaceConditionError(AppError):
    pass


class ServiceOverloadedError(AppError):
    pass


# Order matters: first isinstance match wins.
ERROR_STATUS_MAP: tuple[tuple[tuple[type[BaseException], ...], int], ...] = (
    ((MalformedInputError, RequestValidationError), 400),
    ((NotPermittedError,), 403),
    ((NotFoundError,), 404),
    ((UnacceptableFormatError,), 406),
    ((InvalidAuthenticityTokenError,), 422),
    ((RateLimitExceededError,), 429),
    ((UpstreamNetworkError, httpx.HTTPError, ssl.SSLError), 500),
    ((RaceConditionError, ServiceOverloadedError, UpstreamStorageError), 503),
)


def status_for_exception(exc: BaseException) -> int | None:
    for exc_types, status_code in ERROR_STATUS_MAP:
        if isinstance(exc, exc_types):
            return status_code
    return None


def error_response(status_code: int, headers: Mapping[str, str] | None = None) -> JSONResponse:
    try:
        phrase = HTTPStatus(status_code).phrase
    except ValueError:
        phrase = "Error"
    return JSONResponse(status_code=status_code, content={"error": phrase}, headers=dict(headers) if headers else None)


async def mapped_error_handler(request: Request, exc: Exception) -> JSONResponse:
    status_code = status_for_exception(exc)
    if status_code is None:
        # Only registered for mapped types.
        raise exc
    if isinstance(exc, UpstreamStorageError):
        structlog.get_logger("errors").warning("storage_server_error", error=str(exc))
    return error_response(status_code)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routing misses and guard rejections (401/404/405) share the error body."""

    return error_response(exc.status_code, exc.headers)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    for exc_types, _ in ERROR_STATUS_MAP:
        for exc_type in exc_types:
            app.add_exception_handler(exc_type, mapped_error_handler)
