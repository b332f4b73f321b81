"""
Translate storage-layer failures into the crudkit error taxonomy.

Repositories wrap every storage call in `db_error_handler`:

    async with db_error_handler(self.db, self.model, values=fields):
        async with self.db.begin_nested():
            ...

Write statements run inside a SAVEPOINT, so by the time an IntegrityError
reaches the handler only the failed statement has been undone and the
session is still usable for the column probe below.
"""
import logging
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from crudkit.validators.model_validators import (
    columns_for_constraint,
    find_missing_required,
    find_unique_conflicts,
)
from .base import ConflictError, CrudError, InternalError, InvalidArgumentError
from .integrity_classifier import ConstraintKind, classify_integrity_error

logger = logging.getLogger(__name__)


async def _resolve_conflict_columns(
    db: AsyncSession,
    model,
    constraint: str | None,
    values: dict[str, Any] | None,
    exclude_id: Any,
    primary_key: str,
) -> tuple[str | None, list[str] | None]:
    """
    Identify the unique columns behind a violation.

    1. The constraint name reported by the engine, looked up in table metadata.
    2. Otherwise (SQLite, MySQL) probe each unique column set with the attempted values.
    """
    columns = columns_for_constraint(model, constraint)
    if columns:
        return constraint, columns

    if not values:
        return constraint, None

    try:
        found = await find_unique_conflicts(db, model, values, exclude_id=exclude_id, primary_key=primary_key)
    except SQLAlchemyError:
        logger.warning("mapper.conflict_probe_failed", extra={"model": model.__name__}, exc_info=True)
        return constraint, None

    if found is None:
        return constraint, None
    name, columns = found
    return constraint or name, columns


async def raise_mapped_integrity_error(
    db: AsyncSession,
    exc: IntegrityError,
    model,
    *,
    values: dict[str, Any] | None = None,
    exclude_id: Any = None,
    primary_key: str = "id",
) -> None:
    """
    Map a SQLAlchemy IntegrityError to a crudkit exception and raise it.
    Populates `.fields` and `.constraint` where they can be determined structurally.
    """
    diagnostic = classify_integrity_error(exc)
    model_name = model.__name__

    # UNIQUE -> Conflict
    if diagnostic.kind is ConstraintKind.UNIQUE:
        constraint, columns = await _resolve_conflict_columns(
            db, model, diagnostic.constraint, values, exclude_id, primary_key
        )
        # INFO: duplicates are expected client-level outcomes (409)
        logger.info(
            "mapper.conflict_detected",
            extra={"model": model_name, "fields": columns, "constraint": constraint},
        )
        if columns:
            raise ConflictError(
                f"{model_name} already exists for field(s): {', '.join(columns)}",
                fields=columns,
                constraint=constraint,
            ) from exc
        raise ConflictError(f"{model_name} already exists (unique constraint)", constraint=constraint) from exc

    fields = [diagnostic.column] if diagnostic.column else None

    if diagnostic.kind is ConstraintKind.NOT_NULL:
        if fields is None and values is not None:
            # SQLite and MySQL do not report the column structurally
            fields = find_missing_required(model, values, partial=exclude_id is not None) or None
        logger.info(
            "mapper.not_null_violation",
            extra={"model": model_name, "fields": fields, "constraint": diagnostic.constraint},
        )
        raise InvalidArgumentError(
            f"Missing required field(s) for {model_name}", fields=fields, constraint=diagnostic.constraint
        ) from exc

    if diagnostic.kind is ConstraintKind.FOREIGN_KEY:
        logger.info(
            "mapper.foreign_key_violation",
            extra={"model": model_name, "fields": fields, "constraint": diagnostic.constraint},
        )
        raise InvalidArgumentError(
            f"{model_name} references an entity that does not exist", fields=fields, constraint=diagnostic.constraint
        ) from exc

    if diagnostic.kind is ConstraintKind.CHECK:
        logger.info(
            "mapper.check_violation",
            extra={"model": model_name, "constraint": diagnostic.constraint},
        )
        raise InvalidArgumentError(
            f"{model_name} business rule violated (check constraint)", constraint=diagnostic.constraint
        ) from exc

    # Unknown/unclassified integrity error: opaque to callers, raw text at DEBUG only
    logger.warning("mapper.unknown_integrity_error", extra={"model": model_name, "engine": diagnostic.engine})
    logger.debug("mapper.unknown_integrity_raw", extra={"model": model_name, "raw": str(exc.orig)})
    raise InternalError(f"{model_name} database integrity error") from exc


async def _rollback(db: AsyncSession, model_name: str) -> None:
    try:
        await db.rollback()
    except Exception:
        logger.exception("mapper.rollback_failed", extra={"model": model_name})


@asynccontextmanager
async def db_error_handler(
    db: AsyncSession,
    model,
    *,
    values: dict[str, Any] | None = None,
    exclude_id: Any = None,
    primary_key: str = "id",
):
    """
    Usage:
        async with db_error_handler(self.db, self.model, values=fields):
            ... DB ops that may raise ...

    - CrudError subclasses raised inside the block pass through unchanged.
    - IntegrityError -> ConflictError / InvalidArgumentError / InternalError.
    - DataError (value malformed for the column type) -> InvalidArgumentError.
    - Anything else -> session rollback + InternalError (logged with stack trace).
    """
    model_name = model.__name__
    try:
        yield
    except CrudError:
        raise
    except IntegrityError as exc:
        await raise_mapped_integrity_error(
            db, exc, model, values=values, exclude_id=exclude_id, primary_key=primary_key
        )
    except DataError as exc:
        await _rollback(db, model_name)
        logger.info("mapper.data_error", extra={"model": model_name})
        logger.debug("mapper.data_error_raw", extra={"model": model_name, "raw": str(exc.orig)})
        raise InvalidArgumentError(f"Invalid value for {model_name}") from exc
    except Exception as exc:
        await _rollback(db, model_name)
        logger.exception("mapper.unexpected_error", extra={"model": model_name})
        raise InternalError(f"Failed to operate on {model_name}") from exc
