import pytest
from pydantic import ValidationError

from crudkit.exceptions.base import InvalidArgumentError
from crudkit.pagination.request import DEFAULT_LIMIT, DEFAULT_PAGE, PaginationRequest, SortOrder
from crudkit.pagination.result import PaginatedResult


class TestPaginationRequestDefaults:

    def test_empty_input_uses_defaults(self):
        request = PaginationRequest.from_raw({})

        assert request.page == DEFAULT_PAGE == 1
        assert request.limit == DEFAULT_LIMIT == 10
        assert request.sort_by is None
        assert request.order is SortOrder.ASC
        assert request.search is None
        assert request.filters is None
        assert request.offset == 0

    def test_blank_query_string_values_are_absent(self):
        request = PaginationRequest.from_raw(
            {"page": "", "limit": " ", "sortBy": "", "order": "", "search": "  ", "filters": ""}
        )

        assert (request.page, request.limit) == (1, 10)
        assert request.sort_by is None
        assert request.search is None
        assert request.filters is None

    def test_query_string_values_are_converted(self):
        request = PaginationRequest.from_raw(
            {"page": "3", "limit": "25", "sortBy": "name", "order": "desc", "search": "bob"}
        )

        assert request.page == 3
        assert request.limit == 25
        assert request.offset == 50
        assert request.sort_by == "name"
        assert request.order is SortOrder.DESC
        assert request.search == "bob"

    def test_python_field_names_are_accepted(self):
        request = PaginationRequest(sort_by="email", order="Desc")
        assert request.sort_by == "email"
        assert request.order is SortOrder.DESC

    def test_unknown_keys_are_ignored(self):
        assert PaginationRequest.from_raw({"utm_source": "mail"}).page == 1

    def test_overrides_win_over_params(self):
        assert PaginationRequest.from_raw({"page": "2"}, page=5).page == 5

    def test_request_is_immutable(self):
        request = PaginationRequest()
        with pytest.raises(ValidationError):
            request.page = 2


class TestPaginationRequestRejects:

    @pytest.mark.parametrize("page", ["0", "-1", "abc", "1.5", True])
    def test_bad_page(self, page):
        with pytest.raises(InvalidArgumentError) as exc_info:
            PaginationRequest.from_raw({"page": page})
        assert exc_info.value.fields == ["page"]
        assert str(exc_info.value).startswith("Invalid pagination request")

    @pytest.mark.parametrize("limit", ["0", "ten"])
    def test_bad_limit(self, limit):
        with pytest.raises(InvalidArgumentError) as exc_info:
            PaginationRequest.from_raw({"limit": limit})
        assert exc_info.value.fields == ["limit"]

    def test_bad_order(self):
        with pytest.raises(InvalidArgumentError) as exc_info:
            PaginationRequest.from_raw({"order": "sideways"})
        assert exc_info.value.fields == ["order"]

    @pytest.mark.parametrize(
        "filters",
        [
            "{not json",
            "[1, 2]",
            '"name"',
            '{"name": {"$ne": null}}',
            '{"tags": ["a"]}',
            '{"": 1}',
        ],
    )
    def test_bad_filters_are_errors_not_empty_maps(self, filters):
        with pytest.raises(InvalidArgumentError) as exc_info:
            PaginationRequest.from_raw({"filters": filters})
        assert exc_info.value.fields == ["filters"]


class TestFilterDecoding:

    def test_json_object_string(self):
        request = PaginationRequest.from_raw({"filters": '{"name": "eve", "id": 3, "email": null}'})
        assert request.filters == {"name": "eve", "id": 3, "email": None}

    def test_mapping_from_json_body(self):
        request = PaginationRequest.from_raw({"filters": {"name": "eve"}})
        assert request.filters == {"name": "eve"}

    def test_key_order_is_preserved(self):
        request = PaginationRequest.from_raw({"filters": '{"b": 1, "a": 2}'})
        assert list(request.filters) == ["b", "a"]


class TestPaginatedResult:

    def test_pages(self):
        assert PaginatedResult(data=[], total=0, page=1, limit=10).pages == 0
        assert PaginatedResult(data=[], total=10, page=1, limit=10).pages == 1
        assert PaginatedResult(data=[], total=11, page=1, limit=10).pages == 2

    def test_to_dict_with_serializer(self):
        result = PaginatedResult(data=[1, 2], total=7, page=2, limit=2)
        assert result.to_dict(serialize=lambda n: {"n": n}) == {
            "data": [{"n": 1}, {"n": 2}],
            "total": 7,
            "page": 2,
            "limit": 2,
        }
