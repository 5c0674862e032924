"""Tests for the schema validation gate and response envelope helpers."""

import pytest

from crm_api.core.errors import ValidationAppError
from crm_api.core.responses import calculate_pagination, error_response, success_response
from crm_api.core.validation import query_to_dict, validate, validate_query
from crm_api.schemas.activity import ActivityListParams
from crm_api.schemas.contact import ContactCreate


def test_validate_returns_model() -> None:
    contact = validate(ContactCreate, {"contact_type": "company", "company_name": "Initech"})

    assert contact.company_name == "Initech"
    assert contact.country_code == "US"


def test_validate_lists_every_failing_field() -> None:
    with pytest.raises(ValidationAppError) as exc_info:
        validate(ContactCreate, {"contact_type": "robot", "email": "nope"})

    error = exc_info.value
    assert error.code == "validation_error"
    assert error.message.startswith("Validation error: ")
    paths = [e["path"] for e in error.details["errors"]]
    assert sorted(paths) == ["contact_type", "email"]


def test_query_to_dict_folds_repeated_keys() -> None:
    items = [("tags[]", "a"), ("tags[]", "b"), ("page", "2"), ("x", "1"), ("x", "2")]

    assert query_to_dict(items) == {"tags": ["a", "b"], "page": "2", "x": ["1", "2"]}


def test_validate_query_accepts_camel_and_snake_case() -> None:
    camel = validate_query(ActivityListParams, [("activityType", "call"), ("sortOrder", "asc")])
    snake = validate_query(ActivityListParams, [("activity_type", "call"), ("sort_direction", "asc")])

    assert camel.filters() == snake.filters() == {"activity_type": "call"}
    assert camel.ascending is snake.ascending is True


def test_validate_query_prefix() -> None:
    with pytest.raises(ValidationAppError) as exc_info:
        validate_query(ActivityListParams, [("page", "0")])

    assert exc_info.value.message.startswith("Query parameter validation error: page:")


def test_list_params_offset() -> None:
    params = validate_query(ActivityListParams, [("page", "3"), ("limit", "20")])

    query = params.to_query()
    assert query.offset == 40
    assert query.limit == 20
    assert query.ascending is False
    assert query.sort_by == "created_at"


@pytest.mark.parametrize(
    "page, limit, total, total_pages",
    [(1, 50, 0, 0), (1, 50, 50, 1), (2, 50, 51, 2), (1, 20, 101, 6)],
)
def test_calculate_pagination(page: int, limit: int, total: int, total_pages: int) -> None:
    assert calculate_pagination(page, limit, total).total_pages == total_pages


def test_envelopes() -> None:
    assert success_response([1]) == {"success": True, "data": [1]}
    assert success_response(None, message="done") == {"success": True, "data": None, "message": "done"}
    assert success_response([], pagination=calculate_pagination(1, 10, 0))["pagination"] == {
        "page": 1,
        "limit": 10,
        "total": 0,
        "totalPages": 0,
    }
    assert error_response("Unauthorized", code=None) == {"success": False, "error": "Unauthorized"}
