"""
Generic repository: paginated listing plus point operations for one mapped model.

A Repository is composed, not subclassed: per-entity behaviour lives in the
model mapping and the ColumnPolicy handed to the constructor.

    users = Repository(User, session, USER_COLUMN_POLICY)
    page = await users.paginate(PaginationRequest.from_raw(request.query_params))
    user = await users.get_by_id("42")

Every storage call runs under `db_error_handler`, so callers only ever see the
crudkit taxonomy (InvalidArgumentError, NotFoundError, ConflictError,
InternalError). Writes run inside a SAVEPOINT and are flushed, never
committed: transaction boundaries belong to the caller (see CrudService).
"""
import logging
import re
import time
from typing import Any, Generic, Mapping, Type, TypeVar

from sqlalchemy import delete, inspect as sa_inspect, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from crudkit.database.base import Base
from crudkit.exceptions.base import InvalidArgumentError, NotFoundError
from crudkit.exceptions.mapper import db_error_handler
from crudkit.pagination.request import PaginationRequest
from crudkit.pagination.result import PaginatedResult
from crudkit.query.builder import build_query_plan
from crudkit.query.compiler import MAX_SQL_INT, compile_count_query, compile_page_query
from crudkit.query.plan import QueryPlan
from crudkit.query.policy import ColumnPolicy
from crudkit.validators.model_validators import find_unknown_model_kwargs

# Type variable for the model class
ModelType = TypeVar("ModelType", bound=Base)

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"[0-9]+")


def parse_identifier(raw: Any) -> int:
    """
    Validate a primary-key value coming from the outside world.

    Accepts positive ints and strings of ASCII digits (path parameters arrive
    as strings). Booleans, floats, negatives and zero are rejected.

    Raises:
        InvalidArgumentError: if `raw` is not a well-formed identifier.
    """
    if isinstance(raw, bool):
        value = None
    elif isinstance(raw, int):
        value = raw
    elif isinstance(raw, str) and _DIGITS.fullmatch(raw.strip()):
        value = int(raw.strip())
    else:
        value = None

    if value is None or value < 1:
        raise InvalidArgumentError("Invalid id format", fields=["id"])
    return value


def _primary_key_name(model) -> str:
    mapper = sa_inspect(model)
    columns = mapper.primary_key
    if len(columns) != 1:
        raise ValueError(f"{model.__name__} must have exactly one primary key column")
    return mapper.get_property_by_column(columns[0]).key


class Repository(Generic[ModelType]):
    """
    Generic repository for a single mapped model.

    Type Parameters:
        ModelType: The SQLAlchemy model class this repository manages.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession, policy: ColumnPolicy | None = None):
        """
        Args:
            model: the mapped model class (User, not User()).
            db: the async session every statement runs on.
            policy: searchable/sortable/filterable columns. Defaults to a
                policy that only allows the primary key.

        Raises:
            ValueError: if the policy names columns the model does not map.
        """
        self.model = model
        self.db = db
        self.policy = policy or ColumnPolicy(primary_key=_primary_key_name(model))
        self.policy.validate_against(model)
        self._pk = getattr(model, self.policy.primary_key)

    def _handler(self, **kwargs):
        return db_error_handler(self.db, self.model, primary_key=self.policy.primary_key, **kwargs)

    def _reject_unknown_fields(self, fields: Mapping[str, Any], operation: str) -> None:
        unknown = find_unknown_model_kwargs(self.model, dict(fields))
        if unknown:
            # INFO: client-level validation error; expected input problem -> no stack trace
            logger.info(
                "repo.invalid_fields",
                extra={"model": self.model.__name__, "operation": operation, "invalid_fields": sorted(unknown)},
            )
            raise InvalidArgumentError(
                f"Unknown field(s) for {self.model.__name__}: {', '.join(sorted(unknown))}",
                fields=sorted(unknown),
            )

    # =================================================================================================================
    # List Operations
    # =================================================================================================================

    async def list(self, plan: QueryPlan) -> PaginatedResult[ModelType]:
        """
        Execute a QueryPlan: one SELECT for the page, one COUNT for the total.

        An empty page (no matches, or a page past the end) is a normal result.
        The two statements are not run under a shared snapshot.
        """
        start = time.perf_counter()

        async with self._handler():
            if plan.offset > MAX_SQL_INT:
                # no table holds that many rows; the bound OFFSET would overflow the driver
                data = []
            else:
                result = await self.db.execute(compile_page_query(plan, self.model))
                data = list(result.scalars().all())
            total = (await self.db.execute(compile_count_query(plan, self.model))).scalar_one()

        logger.debug(
            "repo.list.success",
            extra={
                "model": self.model.__name__,
                "operation": "list",
                "page": plan.page,
                "limit": plan.limit,
                "returned": len(data),
                "total": total,
                "duration_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return PaginatedResult(data=data, total=total, page=plan.page, limit=plan.limit)

    async def paginate(self, request: PaginationRequest) -> PaginatedResult[ModelType]:
        """Build the plan for `request` under this repository's policy and run it."""
        return await self.list(build_query_plan(request, self.policy))

    async def count(self, plan: QueryPlan) -> int:
        """Count rows matching the plan's filters and search, ignoring pagination."""
        async with self._handler():
            return (await self.db.execute(compile_count_query(plan, self.model))).scalar_one()

    # =================================================================================================================
    # Point Operations
    # =================================================================================================================

    async def get_by_id(self, entity_id: Any) -> ModelType:
        """
        Raises:
            InvalidArgumentError: malformed id.
            NotFoundError: no row with that primary key.
        """
        pk = parse_identifier(entity_id)

        async with self._handler():
            result = await self.db.execute(select(self.model).where(self._pk == pk))
            entity = result.scalar_one_or_none()

        if entity is None:
            raise NotFoundError(f"{self.model.__name__} with id {pk} not found")

        logger.debug("repo.get.success", extra={"model": self.model.__name__, "id": pk})
        return entity

    async def exists(self, entity_id: Any) -> bool:
        pk = parse_identifier(entity_id)
        async with self._handler():
            result = await self.db.execute(select(self._pk).where(self._pk == pk))
            return result.scalar() is not None

    async def create(self, fields: Mapping[str, Any]) -> ModelType:
        """
        Insert a new row and return it with its assigned identity and defaults.

        Raises:
            InvalidArgumentError: unknown fields, or values the schema rejects.
            ConflictError: a unique column already holds one of the values.
        """
        fields = dict(fields)
        logger.debug(
            "repo.create.start",
            extra={"model": self.model.__name__, "operation": "create", "provided_keys": sorted(fields)},
        )
        self._reject_unknown_fields(fields, "create")

        start = time.perf_counter()
        async with self._handler(values=fields):
            async with self.db.begin_nested():
                entity = self.model(**fields)
                self.db.add(entity)
                await self.db.flush()
            # pull server-side defaults (timestamps) onto the instance
            await self.db.refresh(entity)

        logger.info(
            "repo.create.success",
            extra={
                "model": self.model.__name__,
                "operation": "create",
                "id": getattr(entity, self.policy.primary_key, None),
                "duration_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return entity

    async def update_by_id(self, entity_id: Any, fields: Mapping[str, Any]) -> ModelType:
        """
        Apply a partial update and return the row as read back after the write.

        The UPDATE and the read-back run in the same transaction on the same
        session; the write lock taken by the UPDATE is held until the caller
        commits, so a concurrent delete cannot land in between.

        Raises:
            InvalidArgumentError: malformed id, unknown fields, or an attempt to change the primary key.
            NotFoundError: no row with that primary key.
            ConflictError: the new values collide with a unique column.
        """
        pk = parse_identifier(entity_id)
        fields = dict(fields)
        self._reject_unknown_fields(fields, "update")

        pk_name = self.policy.primary_key
        if pk_name in fields:
            if parse_identifier(fields[pk_name]) != pk:
                raise InvalidArgumentError(f"{self.model.__name__} {pk_name} cannot be changed", fields=[pk_name])
            fields.pop(pk_name)

        if not fields:
            logger.debug("repo.update.noop", extra={"model": self.model.__name__, "id": pk})
            return await self.get_by_id(pk)

        async with self._handler(values=fields, exclude_id=pk):
            async with self.db.begin_nested():
                stmt = (
                    update(self.model)
                    .where(self._pk == pk)
                    .values(**fields)
                    .execution_options(synchronize_session=False)
                )
                result = await self.db.execute(stmt)

            if result.rowcount == 0:
                logger.info("repo.update.not_found", extra={"model": self.model.__name__, "id": pk})
                raise NotFoundError(f"{self.model.__name__} with id {pk} not found")

            # populate_existing refreshes an instance already held in the identity map
            read_back = await self.db.execute(
                select(self.model).where(self._pk == pk).execution_options(populate_existing=True)
            )
            # the UPDATE's write lock keeps the row until the caller commits
            entity = read_back.scalar_one()

        logger.info(
            "repo.update.success",
            extra={"model": self.model.__name__, "operation": "update", "id": pk, "updated_keys": sorted(fields)},
        )
        return entity

    async def delete_by_id(self, entity_id: Any) -> None:
        """
        Raises:
            InvalidArgumentError: malformed id.
            NotFoundError: no row was deleted.
        """
        pk = parse_identifier(entity_id)

        async with self._handler():
            async with self.db.begin_nested():
                stmt = delete(self.model).where(self._pk == pk).execution_options(synchronize_session="fetch")
                result = await self.db.execute(stmt)

        if result.rowcount == 0:
            logger.info("repo.delete.not_found", extra={"model": self.model.__name__, "id": pk})
            raise NotFoundError(f"{self.model.__name__} with id {pk} not found")

        logger.info("repo.delete.success", extra={"model": self.model.__name__, "operation": "delete", "id": pk})
