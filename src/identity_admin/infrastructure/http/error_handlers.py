"""Exception handlers mapping lifecycle failures to uniform JSON error responses.

Register with `register_exception_handlers(app)`.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from http import HTTPStatus
from typing import Final

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from identity_admin.application.dto.admin_models import ErrorResponse
from identity_admin.domain.errors import (
    ConflictingStateError,
    InvalidArgumentError,
    NotFoundError,
)

logger = logging.getLogger(__name__)

_DOMAIN_ERROR_STATUS: Final[tuple[tuple[type[Exception], HTTPStatus], ...]] = (
    (NotFoundError, HTTPStatus.NOT_FOUND),
    (InvalidArgumentError, HTTPStatus.BAD_REQUEST),
    (ConflictingStateError, HTTPStatus.CONFLICT),
)


def error_response(status: HTTPStatus, message: str) -> JSONResponse:
    """Build the uniform error payload for one status and message."""

    body = ErrorResponse(
        timestamp=datetime.now(tz=UTC),
        status=status.value,
        error=status.phrase,
        message=message,
    )
    return JSONResponse(status_code=status.value, content=jsonable_encoder(body))


def _domain_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    for error_type, status in _DOMAIN_ERROR_STATUS:
        if isinstance(exc, error_type):
            logger.info(
                "request_rejected path=%s status=%s error=%s",
                request.url.path,
                status.value,
                type(exc).__name__,
            )
            return error_response(status, str(exc))
    return _unexpected_exception_handler(request, exc)


def _validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    _ = request
    details = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    return error_response(HTTPStatus.UNPROCESSABLE_ENTITY, details or "invalid request")


def _http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    _ = request
    return error_response(HTTPStatus(exc.status_code), str(exc.detail))


def _unexpected_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request_failed_unexpectedly path=%s", request.url.path)
    return error_response(
        HTTPStatus.INTERNAL_SERVER_ERROR,
        f"an unexpected error occurred: {exc}",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach domain, validation, HTTP and catch-all handlers to `app`."""

    for error_type, _status in _DOMAIN_ERROR_STATUS:
        app.add_exception_handler(error_type, _domain_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unexpected_exception_handler)
