from .policy import ColumnPolicy
from .plan import QueryPlan
from .builder import build_query_plan
from .compiler import compile_where, compile_page_query, compile_count_query, escape_like

__all__ = [
    "ColumnPolicy",
    "QueryPlan",
    "build_query_plan",
    "compile_where",
    "compile_page_query",
    "compile_count_query",
    "escape_like",
]
