"""Tests for translating list queries into Mongo find options."""

import pytest
from pymongo import ASCENDING, DESCENDING

from user_service.domain.ports import InvalidQueryError
from user_service.domain.schema import FilterFields, ListQuery, Sort
from user_service.infra.query_builder import build_filter, build_find_options


def test_defaults():
    options = build_find_options(ListQuery())

    assert options.filter == {}
    assert options.sort == [("last_name", ASCENDING)]
    assert options.skip == 0
    assert options.limit == 20


def test_pagination_arithmetic():
    options = build_find_options(ListQuery(page_size=13, page=4))

    assert options.skip == 52
    assert options.limit == 13


def test_zero_page_size_means_no_limit():
    options = build_find_options(ListQuery(page_size=0, page=3))

    assert options.limit == 0
    assert options.skip == 0


def test_descending_sort():
    options = build_find_options(ListQuery(sort=Sort(field="nickname", direction="desc")))

    assert options.sort == [("nickname", DESCENDING)]


def test_unknown_direction_defaults_to_ascending():
    options = build_find_options(ListQuery(sort=Sort(field="email", direction="sideways")))

    assert options.sort == [("email", ASCENDING)]


def test_empty_filters_are_omitted():
    query = ListQuery(filters=FilterFields(first_name="John", email="", country="UK"))

    assert build_filter(query) == {"first_name": "John", "country": "UK"}


def test_missing_sort_field_fails():
    with pytest.raises(InvalidQueryError) as exc_info:
        build_find_options(ListQuery(sort=Sort(field="", direction="asc")))

    assert str(exc_info.value) == "sort field is required"


@pytest.mark.parametrize(
    "query, message",
    [
        (ListQuery(page_size=-1), "pageSize query parameter has to be a positive number"),
        (ListQuery(page=-2), "page query parameter has to be a positive number"),
    ],
)
def test_negative_pagination_fails(query, message):
    with pytest.raises(InvalidQueryError) as exc_info:
        build_find_options(query)

    assert str(exc_info.value) == message
