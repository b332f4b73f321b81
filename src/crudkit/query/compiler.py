"""
Compile a QueryPlan into SQLAlchemy statements against one mapped model.

Column tokens come from the plan (already whitelisted) and are resolved to
mapped attributes; every value is a bound parameter.

    SELECT ... FROM <table>
    WHERE <f1> = :p1 AND <f2> = :p2 AND (<s1> ILIKE :q OR <s2> ILIKE :q)
    ORDER BY <sort> ASC|DESC
    LIMIT :limit OFFSET :offset

LIMIT is capped at MAX_SQL_INT; an offset above it never reaches the engine
(Repository.list answers such pages without a SELECT).

The COUNT statement reuses the same WHERE clause without ORDER BY/LIMIT/OFFSET.
"""
from sqlalchemy import Select, String, cast, func, or_, select
from sqlalchemy.sql.elements import ColumnElement

from crudkit.pagination.request import SortOrder
from .plan import QueryPlan

LIKE_ESCAPE = "\\"

# largest value a signed 64-bit LIMIT/OFFSET parameter can carry
MAX_SQL_INT = 2**63 - 1


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term is matched literally."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def _column(model, name: str):
    return getattr(model, name)


def _search_clause(plan: QueryPlan, model) -> ColumnElement[bool]:
    pattern = f"%{escape_like(plan.search_term)}%"
    matches = []
    for name in plan.search_columns:
        column = _column(model, name)
        # non-text columns are compared on their text form
        target = column if isinstance(column.type, String) else cast(column, String)
        matches.append(target.ilike(pattern, escape=LIKE_ESCAPE))
    return or_(*matches)


def compile_where(plan: QueryPlan, model) -> list[ColumnElement[bool]]:
    """Return the WHERE conditions (to be AND-combined) for `plan`."""
    conditions: list[ColumnElement[bool]] = [
        # `== None` compiles to IS NULL
        _column(model, name) == value
        for name, value in plan.filters
    ]
    if plan.has_search:
        conditions.append(_search_clause(plan, model))
    return conditions


def compile_page_query(plan: QueryPlan, model) -> Select:
    sort_column = _column(model, plan.sort_column)
    ordering = sort_column.desc() if plan.sort_order is SortOrder.DESC else sort_column.asc()
    return (
        select(model)
        .where(*compile_where(plan, model))
        .order_by(ordering)
        .offset(plan.offset)
        .limit(min(plan.limit, MAX_SQL_INT))
    )


def compile_count_query(plan: QueryPlan, model) -> Select:
    return select(func.count()).select_from(model).where(*compile_where(plan, model))
