from dataclasses import dataclass
from typing import Any

from crudkit.pagination.request import SortOrder


@dataclass(frozen=True)
class QueryPlan:
    """
    A validated description of one listing query, ready for compilation.

    Column names in a plan have already been resolved through a ColumnPolicy;
    filter values and the search term are carried raw and are only ever bound
    as statement parameters.
    """

    filters: tuple[tuple[str, Any], ...]
    search_columns: tuple[str, ...]
    search_term: str | None
    sort_column: str
    sort_order: SortOrder
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def has_search(self) -> bool:
        return bool(self.search_term) and bool(self.search_columns)
