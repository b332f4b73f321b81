"""
Application-level exceptions raised by the crudkit repository layer.

The taxonomy is closed: every failure that leaves a repository or the
pagination layer is one of the four classes below. Engine-specific errors
(IntegrityError, DataError, driver exceptions) are translated by
`crudkit.exceptions.mapper` and never reach callers directly.
"""

from typing import Iterable

# canonical crudkit exception


class CrudError(Exception):
    """
    Base exception for repository/service errors.

    - message: human-friendly message (safe to show to clients)
    - fields: optional list of field names related to the error (e.g., ['email'])
    - constraint: optional DB constraint name (for logs only, never in payloads)
    - error_code: canonical short code used by clients and for HTTP mapping
    """

    # Map canonical error_code -> HTTP status (the transport policy table).
    ERROR_CODE_TO_STATUS = {
        "invalid_argument": 400,
        "not_found": 404,
        "conflict": 409,
        "internal": 500,
    }

    default_error_code = "internal"

    def __init__(self, message: str, *, fields: Iterable[str] | None = None,
                 constraint: str | None = None, error_code: str | None = None):
        super().__init__(message)
        self.message = message
        self.fields = list(fields) if fields else None
        self.constraint = constraint
        self.error_code = error_code or self.default_error_code

    def __str__(self) -> str:
        base = self.message
        parts = []
        if self.fields:
            parts.append(f"fields: {', '.join(self.fields)}")
        if self.constraint:
            parts.append(f"constraint: {self.constraint}")
        if self.error_code:
            parts.append(f"code: {self.error_code}")
        if parts:
            return f"{base} ({'; '.join(parts)})"
        return base

    def to_payload(self) -> dict:
        """
        Return a JSON-serializable dict suitable for HTTP responses.

        Shape:
            {
                "detail": "A human-friendly message",
                "code": "conflict",
                "fields": ["email"],        # only when known
            }

        `constraint` is intentionally left out: it names schema internals.
        """
        payload = {"detail": self.message, "code": self.error_code}
        if self.fields:
            payload["fields"] = list(self.fields)
        return payload

    def http_status(self) -> int:
        """Return the HTTP status code that should accompany this error."""
        return self.ERROR_CODE_TO_STATUS.get(self.error_code, 500)


class InvalidArgumentError(CrudError):
    """Malformed identifier, unparsable list input, or input the schema rejects."""

    default_error_code = "invalid_argument"

    def __init__(self, message: str, *, fields: Iterable[str] | None = None, constraint: str | None = None):
        super().__init__(message, fields=fields, constraint=constraint)


class NotFoundError(CrudError):
    default_error_code = "not_found"

    def __init__(self, message: str = "Not found", *, fields: Iterable[str] | None = None):
        super().__init__(message, fields=fields)


class ConflictError(CrudError):
    """Raised when a write would violate a uniqueness constraint."""

    default_error_code = "conflict"

    def __init__(self, message: str, *, fields: Iterable[str] | None = None, constraint: str | None = None):
        super().__init__(message, fields=fields, constraint=constraint)


class InternalError(CrudError):
    """
    Any other storage-layer failure.

    The message is always generic; the underlying exception is chained
    (`raise ... from exc`) and logged, never shown to clients.
    """

    default_error_code = "internal"

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)


__all__ = [
    "CrudError",
    "InvalidArgumentError",
    "NotFoundError",
    "ConflictError",
    "InternalError",
]
