"""
Per-entity allow-lists of columns that list requests may touch.
"""
from dataclasses import dataclass
from typing import Iterable

from crudkit.validators.model_validators import missing_columns


@dataclass(frozen=True, init=False)
class ColumnPolicy:
    """
    Which columns of one entity type may be searched, sorted and filtered.

    Defined once at startup and immutable afterwards. Column names are the
    mapped attribute keys of the model.

    Attributes:
        searchable_columns: ordered, duplicate-free; substring search ORs over them.
        sortable_columns: always contains the primary key.
        filterable_columns: equality-filter allow-list; defaults to sortable | searchable.
        primary_key: the identity column, also the fallback sort key.
    """

    searchable_columns: tuple[str, ...]
    sortable_columns: frozenset[str]
    filterable_columns: frozenset[str]
    primary_key: str

    def __init__(
        self,
        searchable_columns: Iterable[str] = (),
        sortable_columns: Iterable[str] = (),
        filterable_columns: Iterable[str] | None = None,
        primary_key: str = "id",
    ):
        searchable = tuple(dict.fromkeys(searchable_columns))
        sortable = frozenset(sortable_columns) | {primary_key}
        if filterable_columns is None:
            filterable = sortable | frozenset(searchable)
        else:
            filterable = frozenset(filterable_columns)

        object.__setattr__(self, "searchable_columns", searchable)
        object.__setattr__(self, "sortable_columns", sortable)
        object.__setattr__(self, "filterable_columns", filterable)
        object.__setattr__(self, "primary_key", primary_key)

    @property
    def columns(self) -> frozenset[str]:
        """Every column named anywhere in the policy."""
        return (
            frozenset(self.searchable_columns)
            | self.sortable_columns
            | self.filterable_columns
            | {self.primary_key}
        )

    def can_sort(self, column: str | None) -> bool:
        return column is not None and column in self.sortable_columns

    def can_filter(self, column: str) -> bool:
        return column in self.filterable_columns

    def validate_against(self, model) -> None:
        """
        Fail fast at startup if the policy names columns `model` does not map.

        Raises:
            ValueError: listing the unknown column names.
        """
        unknown = missing_columns(model, self.columns)
        if unknown:
            raise ValueError(
                f"ColumnPolicy for {model.__name__} names unknown column(s): {', '.join(unknown)}"
            )
