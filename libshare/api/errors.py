"""Mapping of domain errors to HTTP responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import PlainTextResponse, RedirectResponse

from libshare.core.dependencies import LoginRequired
from libshare.domain.exceptions import (
    BookNotFoundError,
    PermissionDeniedError,
    StorageError,
    UserNotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


async def _login_required(request: Request, exc: LoginRequired):
    return RedirectResponse("/login", status_code=status.HTTP_302_FOUND)


async def _book_not_found(request: Request, exc: BookNotFoundError):
    return PlainTextResponse("Book not found", status_code=status.HTTP_404_NOT_FOUND)


async def _user_not_found(request: Request, exc: UserNotFoundError):
    return PlainTextResponse("User not found", status_code=status.HTTP_404_NOT_FOUND)


async def _forbidden(request: Request, exc: PermissionDeniedError):
    logger.warning("Forbidden %s %s: %s", request.method, request.url.path, exc)
    return PlainTextResponse("Forbidden", status_code=status.HTTP_403_FORBIDDEN)


async def _invalid(request: Request, exc: ValidationError):
    return PlainTextResponse(str(exc), status_code=status.HTTP_400_BAD_REQUEST)


async def _storage_error(request: Request, exc: StorageError):
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return PlainTextResponse("Database error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LoginRequired, _login_required)
    app.add_exception_handler(BookNotFoundError, _book_not_found)
    app.add_exception_handler(UserNotFoundError, _user_not_found)
    app.add_exception_handler(PermissionDeniedError, _forbidden)
    app.add_exception_handler(ValidationError, _invalid)
    app.add_exception_handler(StorageError, _storage_error)
