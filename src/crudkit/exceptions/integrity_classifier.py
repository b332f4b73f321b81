r"""
Classify SQLAlchemy IntegrityErrors into a constraint kind using only the
structured fields each driver exposes.

Two levels of exception handling
--------------------------------
1. Constraint-level classification (this module, internal):
   "what exactly failed in the database" -> `ConstraintKind.UNIQUE`,
   `ConstraintKind.NOT_NULL`, ... plus the constraint name when the engine
   reports one.

2. App-level errors (`crudkit.exceptions.base`, public):
   `ConflictError`, `InvalidArgumentError`, `InternalError`.
   `crudkit.exceptions.mapper` turns (1) into (2).

| Constraint kind (internal) | -> | App-level (external)     |
| -------------------------- | -- | ------------------------ |
| `UNIQUE`                   | -> | `ConflictError`          |
| `NOT_NULL`                 | -> | `InvalidArgumentError`   |
| `FOREIGN_KEY`              | -> | `InvalidArgumentError`   |
| `CHECK`                    | -> | `InvalidArgumentError`   |
| `UNKNOWN`                  | -> | `InternalError`          |

Where the codes come from
-------------------------
| Engine / driver            | Error code attribute                      | Constraint name                         |
| -------------------------- | ----------------------------------------- | --------------------------------------- |
| PostgreSQL psycopg2        | `orig.pgcode`                             | `orig.diag.constraint_name`             |
| PostgreSQL psycopg (3)     | `orig.sqlstate`                           | `orig.diag.constraint_name`             |
| PostgreSQL asyncpg         | `orig.sqlstate` / `orig.pgcode` (adapter) | `orig.__cause__.constraint_name`        |
| MySQL / MariaDB            | `orig.args[0]` (server errno)             | not reported structurally               |
| SQLite (Python 3.11+)      | `orig.sqlite_errorcode` (extended code)   | not reported structurally               |

Message text is never parsed: it is locale and engine-version dependent.
"""
import logging
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)


class ConstraintKind(str, Enum):
    UNIQUE = "unique"
    NOT_NULL = "not_null"
    FOREIGN_KEY = "foreign_key"
    CHECK = "check"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class IntegrityDiagnostic:
    """Result of classifying one IntegrityError."""

    kind: ConstraintKind
    constraint: str | None = None
    column: str | None = None
    engine: str | None = None


# =================================================================================================================
# Engine error code tables
# =================================================================================================================

# https://www.postgresql.org/docs/current/errcodes-appendix.html
class PostgresErrorCodes(str, Enum):
    UNIQUE_VIOLATION = "23505"
    NOT_NULL_VIOLATION = "23502"
    FOREIGN_KEY_VIOLATION = "23503"
    CHECK_VIOLATION = "23514"


PGCODE_KIND_MAP = {
    PostgresErrorCodes.UNIQUE_VIOLATION.value: ConstraintKind.UNIQUE,
    PostgresErrorCodes.NOT_NULL_VIOLATION.value: ConstraintKind.NOT_NULL,
    PostgresErrorCodes.FOREIGN_KEY_VIOLATION.value: ConstraintKind.FOREIGN_KEY,
    PostgresErrorCodes.CHECK_VIOLATION.value: ConstraintKind.CHECK,
}

# https://dev.mysql.com/doc/mysql-errors/8.0/en/server-error-reference.html
MYSQL_ERRNO_KIND_MAP = {
    1062: ConstraintKind.UNIQUE,        # ER_DUP_ENTRY
    1586: ConstraintKind.UNIQUE,        # ER_DUP_ENTRY_WITH_KEY_NAME
    1048: ConstraintKind.NOT_NULL,      # ER_BAD_NULL_ERROR
    1364: ConstraintKind.NOT_NULL,      # ER_NO_DEFAULT_FOR_FIELD
    1451: ConstraintKind.FOREIGN_KEY,   # ER_ROW_IS_REFERENCED_2
    1452: ConstraintKind.FOREIGN_KEY,   # ER_NO_REFERENCED_ROW_2
    3819: ConstraintKind.CHECK,         # ER_CHECK_CONSTRAINT_VIOLATED
}

# https://www.sqlite.org/rescode.html (extended result codes)
SQLITE_ERRORCODE_KIND_MAP = {
    2067: ConstraintKind.UNIQUE,        # SQLITE_CONSTRAINT_UNIQUE
    1555: ConstraintKind.UNIQUE,        # SQLITE_CONSTRAINT_PRIMARYKEY
    1299: ConstraintKind.NOT_NULL,      # SQLITE_CONSTRAINT_NOTNULL
    787: ConstraintKind.FOREIGN_KEY,    # SQLITE_CONSTRAINT_FOREIGNKEY
    275: ConstraintKind.CHECK,          # SQLITE_CONSTRAINT_CHECK
}


# =================================================================================================================
# Per-engine classifiers
# =================================================================================================================

def _classify_from_postgres(orig) -> IntegrityDiagnostic | None:
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if not sqlstate:
        return None

    diag = getattr(orig, "diag", None)
    cause = getattr(orig, "__cause__", None)

    # psycopg exposes diag.*; the asyncpg adapter chains the raw asyncpg error as __cause__
    constraint = getattr(diag, "constraint_name", None) or getattr(cause, "constraint_name", None)
    column = getattr(diag, "column_name", None) or getattr(cause, "column_name", None)

    kind = PGCODE_KIND_MAP.get(str(sqlstate))
    if kind is None:
        logger.warning(
            "integrity.unknown_sqlstate",
            extra={"sqlstate": sqlstate, "constraint_name": constraint},
        )
        kind = ConstraintKind.UNKNOWN

    logger.debug(
        "integrity.postgres_diagnostic",
        extra={"sqlstate": sqlstate, "constraint_name": constraint, "column_name": column},
    )
    return IntegrityDiagnostic(kind=kind, constraint=constraint, column=column, engine="postgresql")


def _classify_from_mysql(orig) -> IntegrityDiagnostic | None:
    args = getattr(orig, "args", None) or ()
    if not args or not isinstance(args[0], int) or isinstance(args[0], bool):
        return None

    errno = args[0]
    kind = MYSQL_ERRNO_KIND_MAP.get(errno)
    if kind is None:
        logger.warning("integrity.unknown_mysql_errno", extra={"errno": errno})
        kind = ConstraintKind.UNKNOWN

    logger.debug("integrity.mysql_diagnostic", extra={"errno": errno})
    return IntegrityDiagnostic(kind=kind, engine="mysql")


def _classify_from_sqlite(orig) -> IntegrityDiagnostic | None:
    errorcode = getattr(orig, "sqlite_errorcode", None)
    if errorcode is None:
        return None

    kind = SQLITE_ERRORCODE_KIND_MAP.get(errorcode)
    if kind is None:
        logger.warning(
            "integrity.unknown_sqlite_errorcode",
            extra={"errorcode": errorcode, "errorname": getattr(orig, "sqlite_errorname", None)},
        )
        kind = ConstraintKind.UNKNOWN

    logger.debug("integrity.sqlite_diagnostic", extra={"errorcode": errorcode})
    return IntegrityDiagnostic(kind=kind, engine="sqlite")


_CLASSIFIERS = (_classify_from_postgres, _classify_from_mysql, _classify_from_sqlite)


def classify_integrity_error(exc: IntegrityError) -> IntegrityDiagnostic:
    """
    Classify a SQLAlchemy IntegrityError from the driver's structured fields.

    Returns:
        IntegrityDiagnostic with `kind` set to UNKNOWN when no classifier
        recognises the driver exception.
    """
    orig = exc.orig

    for classifier in _CLASSIFIERS:
        diagnostic = classifier(orig)
        if diagnostic is not None:
            return diagnostic

    logger.warning(
        "integrity.unclassified",
        extra={"orig_type": type(orig).__name__ if orig is not None else None},
    )
    return IntegrityDiagnostic(kind=ConstraintKind.UNKNOWN)
