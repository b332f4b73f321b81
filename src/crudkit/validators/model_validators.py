"""
Model-introspection helpers used by the repository and the error mapper.

All helpers work on mapped attribute keys (what callers pass as field names),
translating to and from table column names through the mapper.
"""
from typing import Any, Iterable

from sqlalchemy import Index, PrimaryKeyConstraint, UniqueConstraint, and_, inspect as sa_inspect, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import UnmappedColumnError


def get_column_keys(model) -> set[str]:
    """Attribute keys of all mapped columns (relationships excluded)."""
    return {attr.key for attr in sa_inspect(model).column_attrs}


def find_unknown_model_kwargs(model, kwargs: dict) -> list[str]:
    """
    Return the keys of `kwargs` that are not mapped columns of `model`.
    """
    allowed = get_column_keys(model)
    return [k for k in kwargs.keys() if k not in allowed]


def _column_key(model, column) -> str:
    try:
        return sa_inspect(model).get_property_by_column(column).key
    except UnmappedColumnError:
        return column.name


def get_unique_column_sets(model) -> list[tuple[str | None, list[str]]]:
    """
    Return (constraint_name, [attribute keys]) for every uniqueness rule on the table.

    Covers:
      - the primary key
      - UniqueConstraint (including Column(unique=True) without an index)
      - Index(..., unique=True) (including Column(unique=True, index=True))
    """
    table = model.__table__
    unique_sets: list[tuple[str | None, list[str]]] = []

    for constraint in table.constraints:
        if isinstance(constraint, (UniqueConstraint, PrimaryKeyConstraint)):
            keys = [_column_key(model, c) for c in constraint.columns]
            if keys:
                unique_sets.append((_name(constraint.name), keys))

    for index in table.indexes:
        if isinstance(index, Index) and index.unique:
            unique_sets.append((_name(index.name), [_column_key(model, c) for c in index.columns]))

    return unique_sets


def _name(name) -> str | None:
    # naming-convention names are `conv` str subclasses; unnamed constraints carry None
    return str(name) if isinstance(name, str) else None


def columns_for_constraint(model, constraint_name: str | None) -> list[str] | None:
    """
    Resolve a constraint or unique-index name reported by the engine to attribute keys.
    """
    if not constraint_name:
        return None
    for name, keys in get_unique_column_sets(model):
        if name == constraint_name:
            return keys
    return None


async def find_unique_conflicts(
    db: AsyncSession,
    model,
    values: dict[str, Any],
    *,
    exclude_id: Any = None,
    primary_key: str = "id",
) -> tuple[str | None, list[str]] | None:
    """
    Find the first uniqueness rule that `values` collides with in stored rows.

    Only rules whose columns are all present in `values` are probed. When
    `exclude_id` is given (updates) that row is ignored.

    Returns:
        (constraint_name, [attribute keys]) of the first colliding rule, or None.
    """
    pk_attr = getattr(model, primary_key)

    for name, keys in get_unique_column_sets(model):
        if not keys or not all(k in values for k in keys):
            continue

        conditions = [getattr(model, k) == values[k] for k in keys]
        if exclude_id is not None:
            conditions.append(pk_attr != exclude_id)

        result = await db.execute(select(pk_attr).where(and_(*conditions)).limit(1))
        if result.scalar() is not None:
            return name, keys

    return None


def get_required_column_keys(model) -> list[str]:
    """
    Attribute keys of columns the caller must supply: NOT NULL, no client or
    server default, not part of the primary key.
    """
    required = []
    for attr in sa_inspect(model).column_attrs:
        column = attr.columns[0]
        if column.primary_key or column.nullable:
            continue
        if column.default is not None or column.server_default is not None:
            continue
        required.append(attr.key)
    return required


def find_missing_required(model, values: dict[str, Any], *, partial: bool = False) -> list[str]:
    """
    Required columns that `values` leaves empty.

    With partial=True (updates) absent keys keep their stored value, so only
    keys explicitly set to None count.
    """
    missing = []
    for key in get_required_column_keys(model):
        if key in values:
            if values[key] is None:
                missing.append(key)
        elif not partial:
            missing.append(key)
    return missing


def missing_columns(model, names: Iterable[str]) -> list[str]:
    """Return the names in `names` that are not mapped columns of `model`."""
    allowed = get_column_keys(model)
    return sorted({n for n in names if n not in allowed})
