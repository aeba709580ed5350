"""
Service for the website main-metrics report.

Combines aggregate visit stats (current vs. comparison period) with the
os/browser/country breakdowns into one display-ready payload:

    filters -> fetch (stats x2, one per breakdown dimension, concurrently)
            -> language folding -> stats diff -> display formatting -> response

The data access object is injected so that the aggregation logic stays
independent of the storage layer. It must provide the async methods
get_session_metrics, get_pageview_metrics and get_website_stats.
"""
import asyncio
import logging
import math
import uuid
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from app.schemas.metrics import (
    DataPoint,
    FilterSet,
    FormattedItem,
    MainMetricsRequest,
    MainMetricsResponse,
    StatValue,
)
from app.services.date_range import get_compare_date, resolve_date_range
from app.services.filters import build_filter_set, with_date_range, with_search
from app.services.name_tables import NameTables

logger = logging.getLogger(__name__)

# Dimensions answered by the session-metrics query
SESSION_COLUMNS = ("browser", "os", "device", "screen", "language", "country", "region", "city")
# Dimensions answered by the pageview/event-metrics query
EVENT_COLUMNS = ("url", "referrer", "title", "query", "event", "tag", "host")

BREAKDOWN_DIMENSIONS = ("os", "browser", "country")
ICON_DIMENSIONS = frozenset({"os", "browser", "country", "device"})
STAT_KEYS = ("pageviews", "visitors", "visits", "bounces", "totaltime")

Number = Union[int, float]


def normalize_languages(points: Iterable[DataPoint]) -> List[DataPoint]:
    """Fold locale variants into their base language: en-US + en-GB -> en, in first-seen order."""
    combined: Dict[str, int] = {}
    for point in points:
        key = str(point.x).lower().split("-")[0]
        combined[key] = combined.get(key, 0) + point.y
    return [DataPoint(x=key, y=count) for key, count in combined.items()]


def to_number_or_zero(value: Any) -> Number:
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number):
        return 0
    if isinstance(value, int):
        return value
    if number.is_integer() and isinstance(value, (float, Decimal, str)):
        return int(number)
    return number


def first_stat_row(rows: Optional[Sequence[Mapping[str, Any]]]) -> Mapping[str, Any]:
    """The aggregate row of a stats result; an all-zero row when the period has none."""
    if not rows:
        return {key: 0 for key in STAT_KEYS}
    return rows[0]


def diff_stats(current: Mapping[str, Any], previous: Optional[Mapping[str, Any]]) -> Dict[str, StatValue]:
    """Pair every current stat with its comparison-period value. Missing or non-numeric values read as 0."""
    previous = previous or {}
    return {
        key: StatValue(
            value=to_number_or_zero(current[key]),
            prev=to_number_or_zero(previous.get(key)),
        )
        for key in current
    }


class MetricsFormatter:
    """Maps raw dimension codes to display names and icon URLs."""

    def __init__(self, name_tables: NameTables, icon_base_url: str):
        self.name_tables = name_tables
        self.icon_base_url = icon_base_url.rstrip("/")

    def icon_for(self, dimension: str, code: str) -> Optional[str]:
        if dimension not in ICON_DIMENSIONS:
            return None
        slug = code.lower().replace(" ", "-")
        return f"{self.icon_base_url}/{dimension}/{slug}.png"

    def format(self, points: Iterable[DataPoint], dimension: str) -> List[FormattedItem]:
        """
        One FormattedItem per point, same order.

        Codes missing from the name table, and every code of a dimension without
        a table, keep the raw code as their name.
        """
        table = self.name_tables.get(dimension) or {}
        return [
            FormattedItem(
                name=table.get(point.x) or point.x,
                icon=self.icon_for(dimension, point.x),
                x=point.x,
                y=point.y,
            )
            for point in points
        ]


def assemble_response(
    breakdowns: Mapping[str, List[FormattedItem]],
    stats: Optional[Dict[str, StatValue]],
) -> MainMetricsResponse:
    payload: Dict[str, Any] = {dimension: list(items or []) for dimension, items in breakdowns.items()}
    return MainMetricsResponse(stats=stats or {}, **payload)


class MetricsService:
    def __init__(
        self,
        queries,
        formatter: MetricsFormatter,
        dimensions: Sequence[str] = BREAKDOWN_DIMENSIONS,
        default_limit: Optional[int] = None,
    ):
        self.queries = queries
        self.formatter = formatter
        self.dimensions = tuple(dimensions)
        self.default_limit = default_limit

    async def fetch_metrics(
        self,
        website_id: uuid.UUID,
        dimension: str,
        filter_set: FilterSet,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[DataPoint]:
        """Breakdown data for one dimension, from whichever query family owns it."""
        if dimension in SESSION_COLUMNS:
            data = await self.queries.get_session_metrics(website_id, dimension, filter_set, limit, offset)
            if dimension == "language":
                return normalize_languages(data)
            return list(data)

        if dimension in EVENT_COLUMNS:
            data = await self.queries.get_pageview_metrics(website_id, dimension, filter_set, limit, offset)
            return list(data)

        logger.debug(f"No metrics query for dimension '{dimension}'")
        return []

    async def get_breakdown(
        self,
        website_id: uuid.UUID,
        dimension: str,
        filter_set: FilterSet,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[FormattedItem]:
        points = await self.fetch_metrics(website_id, dimension, filter_set, limit, offset)
        return self.formatter.format(points, dimension)

    async def get_stats(
        self,
        website_id: uuid.UUID,
        filter_set: FilterSet,
        compare_filter_set: FilterSet,
    ) -> Dict[str, StatValue]:
        current, previous = await asyncio.gather(
            self.queries.get_website_stats(website_id, filter_set),
            self.queries.get_website_stats(website_id, compare_filter_set),
        )
        return diff_stats(first_stat_row(current), first_stat_row(previous))

    async def get_main_metrics(self, website_id: uuid.UUID, request: MainMetricsRequest) -> MainMetricsResponse:
        date_range = resolve_date_range(request.start_at, request.end_at)
        compare_range = get_compare_date(request.compare, date_range.start_date, date_range.end_date)

        filter_set = build_filter_set(request.filters, date_range)
        compare_filter_set = with_date_range(filter_set, compare_range)
        search_filter_set = with_search(filter_set, request.type, request.search)

        limit = request.limit if request.limit is not None else self.default_limit
        offset = request.offset

        logger.info(
            f"Main metrics for website {website_id}: type={request.type} "
            f"{date_range.start_date.isoformat()} - {date_range.end_date.isoformat()}"
        )

        stats, *breakdowns = await asyncio.gather(
            self.get_stats(website_id, filter_set, compare_filter_set),
            *(
                self.get_breakdown(website_id, dimension, search_filter_set, limit, offset)
                for dimension in self.dimensions
            ),
        )

        return assemble_response(dict(zip(self.dimensions, breakdowns)), stats)
