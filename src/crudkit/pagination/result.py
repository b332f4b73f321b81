"""
Container returned by list operations.
"""
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")


@dataclass
class PaginatedResult(Generic[T]):
    """
    One page of entities plus the total number of matching rows.

    `total` comes from a COUNT run under the same predicate as the SELECT that
    produced `data`, but as a separate statement: under concurrent writes the
    two may reflect slightly different snapshots.
    """

    data: list[T] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 10

    @property
    def pages(self) -> int:
        """Number of pages needed to show `total` rows at `limit` per page."""
        if self.total <= 0:
            return 0
        return math.ceil(self.total / self.limit)

    def to_dict(self, serialize: Callable[[T], Any] | None = None) -> dict[str, Any]:
        """
        Return the wire shape `{"data", "total", "page", "limit"}`.

        Args:
            serialize: optional callable applied to each entity (e.g. a schema's
                model_validate(...).model_dump()). Entities are passed through as-is otherwise.
        """
        items = [serialize(item) for item in self.data] if serialize else list(self.data)
        return {"data": items, "total": self.total, "page": self.page, "limit": self.limit}
