"""
Translation of raw list query parameters into a ListQuery.
"""

import re
from typing import Mapping, Optional

from .ports import InvalidQueryError
from .schema import (
    SORTABLE_FIELDS,
    FILTERABLE_FIELDS,
    DEFAULT_PAGE_SIZE,
    DEFAULT_PAGE,
    FilterFields,
    ListQuery,
    Sort,
)


PAGE_SIZE_PARAM = "pageSize"
PAGE_PARAM = "page"
SORT_BY_PARAM = "sortBy"

SORT_DIRECTIONS = ("asc", "desc")

INTEGER_RE = re.compile(r"[+-]?[0-9]+")


def parse_list_query(params: Mapping[str, str]) -> ListQuery:
    """
    Build a ListQuery from query parameters.

    Parameters are checked in the order pageSize, page, sortBy and the
    first failure is reported. Filters cannot fail.

    Args:
        params: Raw query parameters

    Returns:
        Validated ListQuery with defaults for absent parameters

    Raises:
        InvalidQueryError: If pageSize, page or sortBy is invalid
    """
    page_size = _parse_non_negative(params.get(PAGE_SIZE_PARAM), PAGE_SIZE_PARAM, DEFAULT_PAGE_SIZE)
    page = _parse_non_negative(params.get(PAGE_PARAM), PAGE_PARAM, DEFAULT_PAGE)

    sort = Sort()
    sort_by = params.get(SORT_BY_PARAM)
    if sort_by is not None:
        sort = parse_sort_by(sort_by)

    return ListQuery(
        page_size=page_size,
        page=page,
        sort=sort,
        filters=parse_filter_fields(params),
    )


def parse_sort_by(sort_by: str) -> Sort:
    """
    Parse a "<field>.<direction>" sort specification.

    Raises:
        InvalidQueryError: On wrong format, unknown field or unknown direction
    """
    parts = sort_by.lower().split(".")

    if len(parts) != 2:
        raise InvalidQueryError("invalid sortBy query parameter format")

    field, direction = parts
    if field not in SORTABLE_FIELDS:
        raise InvalidQueryError("unsupported sorting field")
    if direction not in SORT_DIRECTIONS:
        raise InvalidQueryError("invalid sorting type")

    return Sort(field=field, direction=direction)


def parse_filter_fields(params: Mapping[str, str]) -> FilterFields:
    """Copy the filterable parameters verbatim; absent ones stay empty."""
    values = {
        name: params[name]
        for name in FILTERABLE_FIELDS
        if params.get(name) is not None
    }
    return FilterFields(**values)


def _parse_non_negative(raw: Optional[str], name: str, default: int) -> int:
    if raw is None:
        return default

    if not INTEGER_RE.fullmatch(raw):
        raise InvalidQueryError(f"{name} query parameter has to be a number")

    value = int(raw)

    if value < 0:
        raise InvalidQueryError(f"{name} query parameter has to be a positive number")
    return value
