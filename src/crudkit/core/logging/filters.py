"""
Logging filters.

RequestIdFilter
    Stamps `record.request_id` from a contextvar set by RequestIDMiddleware.
    A contextvar (not threading.local) follows the request across awaits.
    Records outside a request get the sentinel "-", so "%(request_id)s" in a
    format string never raises.

RedactFilter
    Masks sensitive attributes passed through `extra={...}`. Repository log
    events carry field *names* (provided_keys, updated_keys), never values,
    but a caller can still log a payload by accident.
"""

import logging
from logging import LogRecord
import contextvars

_request_id_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)

REDACTED = "***REDACTED***"


def set_request_id(request_id: str | None) -> contextvars.Token:
    """Set the request id for the current context; pass the token to reset_request_id()."""
    return _request_id_ctx.set(request_id)


def reset_request_id(token: contextvars.Token) -> None:
    _request_id_ctx.reset(token)


def get_request_id() -> str | None:
    return _request_id_ctx.get()


class RequestIdFilter(logging.Filter):
    """
    Precedence: explicit extra={"request_id": ...}, then the contextvar, then "-".
    Never drops a record.
    """

    def filter(self, record: LogRecord) -> bool:
        record.request_id = (
            getattr(record, "request_id", None) or get_request_id() or "-"
        )
        return True


class RedactFilter(logging.Filter):
    SENSITIVE = {
        "password",
        "secret",
        "token",
        "access_token",
        "refresh_token",
        "authorization",
        "db_password",
        "database_url",
    }

    def filter(self, record: LogRecord) -> bool:
        for key in list(record.__dict__.keys()):
            if key.lower() in self.SENSITIVE:
                record.__dict__[key] = REDACTED
        return True
