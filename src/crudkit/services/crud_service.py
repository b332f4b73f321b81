"""
Service layer over a Repository: owns the transaction boundary.

Repositories only flush. The service commits after a successful write and
rolls back after a failed one, so a request handler can do:

    service = CrudService(Repository(User, session, USER_COLUMN_POLICY))
    user = await service.create({"name": "Alice", "email": "alice@example.com"})

Errors propagate unchanged (they are already crudkit exceptions).
"""
import logging
from typing import Any, Generic, Mapping

from crudkit.pagination.request import PaginationRequest
from crudkit.pagination.result import PaginatedResult
from crudkit.repositories.repository import ModelType, Repository

logger = logging.getLogger(__name__)


class CrudService(Generic[ModelType]):

    def __init__(self, repository: Repository[ModelType]):
        self.repository = repository

    @property
    def db(self):
        return self.repository.db

    async def _commit_or_rollback(self, operation: str, coro):
        try:
            result = await coro
            await self.db.commit()
            return result
        except Exception:
            await self.db.rollback()
            logger.debug(
                "service.rolled_back",
                extra={"model": self.repository.model.__name__, "operation": operation},
            )
            raise

    async def find_all(self, request: PaginationRequest) -> PaginatedResult[ModelType]:
        return await self.repository.paginate(request)

    async def find_one(self, entity_id: Any) -> ModelType:
        return await self.repository.get_by_id(entity_id)

    async def create(self, fields: Mapping[str, Any]) -> ModelType:
        return await self._commit_or_rollback("create", self.repository.create(fields))

    async def update(self, entity_id: Any, fields: Mapping[str, Any]) -> ModelType:
        return await self._commit_or_rollback("update", self.repository.update_by_id(entity_id, fields))

    async def delete(self, entity_id: Any) -> None:
        await self._commit_or_rollback("delete", self.repository.delete_by_id(entity_id))
