"""
Translation of a ListQuery into MongoDB find arguments.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from pymongo import ASCENDING, DESCENDING

from ..domain.ports import InvalidQueryError
from ..domain.query_params import PAGE_SIZE_PARAM, PAGE_PARAM
from ..domain.schema import ListQuery, FILTERABLE_FIELDS


@dataclass
class FindOptions:
    """Arguments for Collection.find. A limit of 0 means no limit."""
    filter: Dict[str, Any] = field(default_factory=dict)
    sort: List[Tuple[str, int]] = field(default_factory=list)
    skip: int = 0
    limit: int = 0


def build_find_options(query: ListQuery) -> FindOptions:
    """
    Build filter, sort and pagination for a list query.

    The query may not come from the parser, so sort field and
    pagination are checked again here.

    Raises:
        InvalidQueryError: If the sort field is missing or pagination is negative
    """
    if not query.sort.field:
        raise InvalidQueryError("sort field is required")
    if query.page_size < 0:
        raise InvalidQueryError(f"{PAGE_SIZE_PARAM} query parameter has to be a positive number")
    if query.page < 0:
        raise InvalidQueryError(f"{PAGE_PARAM} query parameter has to be a positive number")

    return FindOptions(
        filter=build_filter(query),
        sort=[(query.sort.field, DESCENDING if query.sort.direction == "desc" else ASCENDING)],
        skip=query.page * query.page_size,
        limit=query.page_size,
    )


def build_filter(query: ListQuery) -> Dict[str, Any]:
    """Exact-match clauses for every non-empty filter field."""
    filters = query.filters
    return {
        name: getattr(filters, name)
        for name in FILTERABLE_FIELDS
        if getattr(filters, name)
    }
