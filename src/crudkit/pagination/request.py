"""
Normalized description of one listing query.

`PaginationRequest` accepts the raw, untrusted values a routing layer hands
over (query-string pairs are all strings, JSON bodies carry native types) and
turns them into validated Python values:

| Field     | Wire name | Default | Normalization                                        |
| --------- | --------- | ------- | ---------------------------------------------------- |
| `page`    | `page`    | 1       | int, >= 1, blank -> default                          |
| `limit`   | `limit`   | 10      | int, >= 1, blank -> default                          |
| `sort_by` | `sortBy`  | None    | blank -> None; checked later against the ColumnPolicy |
| `order`   | `order`   | ASC     | case-insensitive ASC/DESC                            |
| `search`  | `search`  | None    | blank -> None                                        |
| `filters` | `filters` | None    | JSON object string (or mapping) -> {column: scalar}  |

Every validation failure surfaces as `InvalidArgumentError`; a filters payload
that does not decode is an error, never an empty filter map.
"""
import json
from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from crudkit.exceptions.base import InvalidArgumentError

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10

SCALAR_TYPES = (str, int, float, bool, type(None))


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class PaginationRequest(BaseModel):
    """
    Validated listing request.

    Construct it directly with Python values, or with `from_raw()` for
    untrusted input (the latter converts pydantic errors to InvalidArgumentError).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    page: int = Field(DEFAULT_PAGE, ge=1)
    limit: int = Field(DEFAULT_LIMIT, ge=1)
    sort_by: str | None = Field(None, alias="sortBy")
    order: SortOrder = SortOrder.ASC
    search: str | None = None
    filters: dict[str, Any] | None = None

    # --- Validators ---
    @field_validator("page", "limit", mode="before")
    @classmethod
    def default_blank_numbers(cls, v: Any, info) -> Any:
        """Blank or missing page/limit fall back to defaults; booleans are not numbers."""
        v = _blank_to_none(v)
        if v is None:
            return DEFAULT_PAGE if info.field_name == "page" else DEFAULT_LIMIT
        if isinstance(v, bool):
            raise ValueError("must be an integer")
        if isinstance(v, str):
            v = v.strip()
        return v

    @field_validator("sort_by", "search", mode="before")
    @classmethod
    def blank_strings_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("order", mode="before")
    @classmethod
    def normalize_order(cls, v: Any) -> Any:
        v = _blank_to_none(v)
        if v is None:
            return SortOrder.ASC
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("filters", mode="before")
    @classmethod
    def decode_filters(cls, v: Any) -> dict[str, Any] | None:
        """
        Decode the JSON-object-encoded filters payload.

        Example wire value: '{"role": "admin", "active": true}'
        """
        v = _blank_to_none(v)
        if v is None:
            return None

        if isinstance(v, (str, bytes)):
            try:
                v = json.loads(v)
            except ValueError as exc:
                raise ValueError("filters must be a JSON-encoded object") from exc

        if not isinstance(v, Mapping):
            raise ValueError("filters must be a JSON object mapping column names to values")

        decoded: dict[str, Any] = {}
        for key, value in v.items():
            if not isinstance(key, str) or not key:
                raise ValueError("filter keys must be non-empty strings")
            if not isinstance(value, SCALAR_TYPES):
                raise ValueError(f"filter value for '{key}' must be a scalar")
            decoded[key] = value
        return decoded

    # --- Construction from untrusted input ---
    @classmethod
    def from_raw(cls, params: Mapping[str, Any] | None = None, **overrides: Any) -> "PaginationRequest":
        """
        Build a request from query-string pairs or a decoded JSON body.

        Raises:
            InvalidArgumentError: listing the offending field names.
        """
        data = dict(params or {})
        data.update(overrides)
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
            reasons = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors())
            raise InvalidArgumentError(f"Invalid pagination request: {reasons}", fields=fields) from exc

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit
