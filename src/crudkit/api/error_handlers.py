"""
FastAPI exception handlers that map crudkit exceptions to HTTP responses.

How to use:
    - Call `register_exception_handlers(app)` from your app factory.
    - Repositories and services raise crudkit.exceptions.base.* exceptions.
    - These handlers produce stable JSON payloads (via .to_payload()) and
      status codes (via .http_status()):

| Exception              | Status | code               |
| ---------------------- | ------ | ------------------ |
| `InvalidArgumentError` | 400    | `invalid_argument` |
| `NotFoundError`        | 404    | `not_found`        |
| `ConflictError`        | 409    | `conflict`         |
| `InternalError`        | 500    | `internal`         |
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from crudkit.exceptions.base import (
    CrudError,
    ConflictError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
)

logger = logging.getLogger(__name__)


async def client_error_handler(request: Request, exc: CrudError) -> JSONResponse:
    """
    400 / 404 / 409: expected outcomes of bad or conflicting client input.
    """
    logger.info(
        "http.client_error",
        extra={"method": request.method, "path": request.url.path, "code": exc.error_code, "fields": exc.fields},
    )
    return JSONResponse(status_code=exc.http_status(), content=exc.to_payload())


async def internal_error_handler(request: Request, exc: CrudError) -> JSONResponse:
    """
    500: the payload is always generic; the chained cause was logged where it was raised.
    """
    logger.warning(
        "http.internal_error",
        extra={"method": request.method, "path": request.url.path, "error_type": type(exc).__name__},
    )
    payload = InternalError().to_payload()
    return JSONResponse(status_code=500, content=payload)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InvalidArgumentError, client_error_handler)
    app.add_exception_handler(NotFoundError, client_error_handler)
    app.add_exception_handler(ConflictError, client_error_handler)
    app.add_exception_handler(InternalError, internal_error_handler)
    # any other CrudError subclass is treated as opaque
    app.add_exception_handler(CrudError, internal_error_handler)
