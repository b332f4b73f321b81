"""
Turn a PaginationRequest into a QueryPlan for one entity's ColumnPolicy.

Pure logic: no I/O, no SQL. The only failure is a filter key outside the
policy's filterable columns.

Decision table
--------------
| Input                                   | Plan                                           |
| --------------------------------------- | ---------------------------------------------- |
| filters key in filterable_columns       | equality predicate, AND-combined, input order   |
| filters key not in filterable_columns   | InvalidArgumentError (fields = offending keys) |
| search set, searchable_columns set      | one OR group of substring matches              |
| search set, no searchable_columns       | search ignored                                 |
| sort_by in sortable_columns             | ORDER BY sort_by                               |
| sort_by absent or not sortable          | ORDER BY primary key                           |
| page beyond the data                    | plan is still valid; the page comes back empty |

Only one sort key is applied. Rows with equal sort values come back in an
engine-defined order, so callers that need stable pagination should sort by a
unique column.
"""
import logging

from crudkit.exceptions.base import InvalidArgumentError
from crudkit.pagination.request import PaginationRequest
from .plan import QueryPlan
from .policy import ColumnPolicy

logger = logging.getLogger(__name__)


def build_query_plan(request: PaginationRequest, policy: ColumnPolicy) -> QueryPlan:
    """
    Validate `request` against `policy` and resolve it into a QueryPlan.

    Raises:
        InvalidArgumentError: if any filter key is not a filterable column.
    """
    # 1) Filters
    filters = tuple((request.filters or {}).items())
    rejected = sorted(key for key, _ in filters if not policy.can_filter(key))
    if rejected:
        logger.info("query.plan.rejected_filters", extra={"fields": rejected})
        raise InvalidArgumentError(
            f"Filtering is not allowed on field(s): {', '.join(rejected)}", fields=rejected
        )

    # 2) Search
    search_term = request.search or None
    search_columns = policy.searchable_columns if search_term else ()
    if search_term and not search_columns:
        logger.debug("query.plan.search_ignored", extra={"reason": "no_searchable_columns"})
        search_term = None

    # 3) Sort
    if policy.can_sort(request.sort_by):
        sort_column = request.sort_by
    else:
        if request.sort_by is not None:
            logger.debug(
                "query.plan.sort_fallback",
                extra={"requested": request.sort_by, "fallback": policy.primary_key},
            )
        sort_column = policy.primary_key

    # 4) Pagination is carried as page/limit; the plan derives the offset
    return QueryPlan(
        filters=filters,
        search_columns=tuple(search_columns),
        search_term=search_term,
        sort_column=sort_column,
        sort_order=request.order,
        page=request.page,
        limit=request.limit,
    )
