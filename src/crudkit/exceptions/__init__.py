# crudkit/
# │
# ├── exceptions/
# │   ├── __init__.py
# │   ├── base.py                    # Public error taxonomy (InvalidArgument, NotFound, Conflict, Internal)
# │   ├── integrity_classifier.py    # Engine-level error codes -> constraint kind
# │   └── mapper.py                  # Map engine errors to the public taxonomy (db_error_handler)

from .base import (
    CrudError,
    InvalidArgumentError,
    NotFoundError,
    ConflictError,
    InternalError,
)

__all__ = [
    "CrudError",
    "InvalidArgumentError",
    "NotFoundError",
    "ConflictError",
    "InternalError",
]
