from .request import PaginationRequest, SortOrder, DEFAULT_PAGE, DEFAULT_LIMIT
from .result import PaginatedResult

__all__ = ["PaginationRequest", "SortOrder", "PaginatedResult", "DEFAULT_PAGE", "DEFAULT_LIMIT"]
