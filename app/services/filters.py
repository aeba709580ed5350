"""
Filter builder for metrics queries.

Turns request filter parameters into a FilterSet and injects the optional
search predicate for the requested breakdown dimension.
"""
from typing import Dict, Mapping, Optional

from app.schemas.metrics import DateRange, FilterSet, QueryFilter

# Logical dimension name -> physical column name
FILTER_COLUMNS: Dict[str, str] = {
    "url": "url_path",
    "referrer": "referrer_domain",
    "host": "hostname",
    "title": "page_title",
    "query": "url_query",
    "os": "os",
    "browser": "browser",
    "device": "device",
    "country": "country",
    "region": "subdivision1",
    "city": "city",
    "language": "language",
    "event": "event_name",
    "tag": "tag",
}

OPERATORS = {
    "equals": "eq",
    "not_equals": "neq",
    "contains": "c",
    "does_not_contain": "dnc",
}


def resolve_column(name: str) -> str:
    """Physical column for a dimension, defaulting to the name itself."""
    return FILTER_COLUMNS.get(name, name)


def _parse_filter_value(value: str) -> tuple[str, str]:
    """Split an optional operator prefix: "neq.Windows" -> ("neq", "Windows")."""
    prefix, sep, rest = value.partition(".")
    if sep and prefix in OPERATORS.values():
        return prefix, rest
    return OPERATORS["equals"], value


def get_request_filters(params: Mapping[str, Optional[str]]) -> Dict[str, QueryFilter]:
    """Build one filter entry per supplied dimension filter parameter."""
    filters: Dict[str, QueryFilter] = {}
    for name in FILTER_COLUMNS:
        value = params.get(name)
        if value is None or value == "":
            continue
        operator, operand = _parse_filter_value(value)
        filters[name] = QueryFilter(
            name=name,
            column=resolve_column(name),
            operator=operator,
            value=operand,
        )
    return filters


def build_filter_set(params: Mapping[str, Optional[str]], date_range: DateRange) -> FilterSet:
    return FilterSet(
        start_date=date_range.start_date,
        end_date=date_range.end_date,
        filters=get_request_filters(params),
    )


def with_date_range(filter_set: FilterSet, date_range: DateRange) -> FilterSet:
    return filter_set.model_copy(
        update={"start_date": date_range.start_date, "end_date": date_range.end_date}
    )


def with_search(filter_set: FilterSet, dimension: str, search: Optional[str]) -> FilterSet:
    """
    Return a copy of filter_set whose entry for `dimension` is a "contains" match on `search`.

    The input set is returned as-is when no search term is given.
    """
    if not search:
        return filter_set

    filters = dict(filter_set.filters)
    filters[dimension] = QueryFilter(
        name=dimension,
        column=resolve_column(dimension),
        operator=OPERATORS["contains"],
        value=search,
    )
    return filter_set.model_copy(update={"filters": filters})
