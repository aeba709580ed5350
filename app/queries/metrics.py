"""
Aggregation queries behind the main-metrics endpoint.

The query functions are synchronous and take an open Session; SqlMetricsQueries
wraps them for the async metrics service, running each call in the thread pool
on its own session.
"""
import logging
import uuid
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import case, distinct, extract, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from app.models.website_event import EventType, WebsiteEvent
from app.models.website_session import WebsiteSession
from app.schemas.metrics import DataPoint, FilterSet, QueryFilter
from app.services.filters import OPERATORS, resolve_column

logger = logging.getLogger(__name__)

# Physical column name -> mapped attribute, split by the table that owns it
SESSION_TABLE_COLUMNS = {
    "browser": WebsiteSession.browser,
    "os": WebsiteSession.os,
    "device": WebsiteSession.device,
    "screen": WebsiteSession.screen,
    "language": WebsiteSession.language,
    "country": WebsiteSession.country,
    "subdivision1": WebsiteSession.subdivision1,
    "city": WebsiteSession.city,
}

EVENT_TABLE_COLUMNS = {
    "url_path": WebsiteEvent.url_path,
    "url_query": WebsiteEvent.url_query,
    "referrer_domain": WebsiteEvent.referrer_domain,
    "page_title": WebsiteEvent.page_title,
    "hostname": WebsiteEvent.hostname,
    "event_name": WebsiteEvent.event_name,
    "tag": WebsiteEvent.tag,
}


class QueryError(Exception):
    """A metrics or stats query could not be executed."""


def _get_column(name: str):
    column = SESSION_TABLE_COLUMNS.get(name)
    if column is None:
        column = EVENT_TABLE_COLUMNS.get(name)
    if column is None:
        raise QueryError(f"Unknown column: {name}")
    return column


def _filter_clause(query_filter: QueryFilter):
    column = _get_column(query_filter.column)
    operator = query_filter.operator
    value = query_filter.value

    if operator == OPERATORS["equals"]:
        return column == value
    if operator == OPERATORS["not_equals"]:
        return column != value
    if operator == OPERATORS["contains"]:
        return column.icontains(value, autoescape=True)
    if operator == OPERATORS["does_not_contain"]:
        return ~column.icontains(value, autoescape=True)
    raise QueryError(f"Unsupported filter operator: {operator}")


def _base_conditions(website_id: uuid.UUID, filter_set: FilterSet) -> list:
    conditions = [
        WebsiteEvent.website_id == website_id,
        WebsiteEvent.created_at >= filter_set.start_date,
        WebsiteEvent.created_at <= filter_set.end_date,
    ]
    conditions.extend(_filter_clause(f) for f in filter_set.filters.values())
    return conditions


def _elapsed_seconds(dialect: str, start, end):
    """Whole seconds between two timestamps, for the database in use."""
    if dialect == "sqlite":
        return func.round((func.julianday(end) - func.julianday(start)) * 86400)
    return func.round(extract("epoch", end - start))


def get_session_metrics(
    db: Session,
    website_id: uuid.UUID,
    dimension: str,
    filter_set: FilterSet,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> List[DataPoint]:
    """Distinct sessions with a pageview in range, grouped by a session column."""
    column = SESSION_TABLE_COLUMNS.get(resolve_column(dimension))
    if column is None:
        raise QueryError(f"Not a session column: {dimension}")

    y = func.count(distinct(WebsiteEvent.session_id)).label("y")
    stmt = (
        select(column.label("x"), y)
        .select_from(WebsiteEvent)
        .join(WebsiteSession, WebsiteSession.id == WebsiteEvent.session_id)
        .where(
            *_base_conditions(website_id, filter_set),
            WebsiteEvent.event_type == EventType.PAGEVIEW.value,
            column.is_not(None),
        )
        .group_by(column)
        .order_by(y.desc(), column)
        .limit(limit)
        .offset(offset)
    )
    return [DataPoint(x=str(x), y=int(count)) for x, count in db.execute(stmt).all()]


def get_pageview_metrics(
    db: Session,
    website_id: uuid.UUID,
    dimension: str,
    filter_set: FilterSet,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> List[DataPoint]:
    """Event counts grouped by a page/event column; custom events for "event", pageviews otherwise."""
    column = EVENT_TABLE_COLUMNS.get(resolve_column(dimension))
    if column is None:
        raise QueryError(f"Not an event column: {dimension}")

    event_type = EventType.CUSTOM_EVENT if dimension == "event" else EventType.PAGEVIEW
    y = func.count(WebsiteEvent.id).label("y")
    stmt = (
        select(column.label("x"), y)
        .select_from(WebsiteEvent)
        .join(WebsiteSession, WebsiteSession.id == WebsiteEvent.session_id)
        .where(
            *_base_conditions(website_id, filter_set),
            WebsiteEvent.event_type == event_type.value,
            column.is_not(None),
            column != "",
        )
        .group_by(column)
        .order_by(y.desc(), column)
        .limit(limit)
        .offset(offset)
    )
    return [DataPoint(x=str(x), y=int(count)) for x, count in db.execute(stmt).all()]


def get_website_stats(db: Session, website_id: uuid.UUID, filter_set: FilterSet) -> List[Dict[str, Any]]:
    """
    Aggregate stats for the window as a single row.

    Keys: pageviews, visitors (distinct sessions), visits, bounces (visits with a
    single pageview) and totaltime (seconds between first and last pageview, summed per visit).
    """
    visits = (
        select(
            WebsiteEvent.session_id,
            WebsiteEvent.visit_id,
            func.count(WebsiteEvent.id).label("c"),
            func.min(WebsiteEvent.created_at).label("min_time"),
            func.max(WebsiteEvent.created_at).label("max_time"),
        )
        .select_from(WebsiteEvent)
        .join(WebsiteSession, WebsiteSession.id == WebsiteEvent.session_id)
        .where(
            *_base_conditions(website_id, filter_set),
            WebsiteEvent.event_type == EventType.PAGEVIEW.value,
        )
        .group_by(WebsiteEvent.session_id, WebsiteEvent.visit_id)
        .subquery()
    )

    dialect = db.get_bind().dialect.name
    stmt = select(
        func.coalesce(func.sum(visits.c.c), 0).label("pageviews"),
        func.count(distinct(visits.c.session_id)).label("visitors"),
        func.count(visits.c.visit_id).label("visits"),
        func.coalesce(func.sum(case((visits.c.c == 1, 1), else_=0)), 0).label("bounces"),
        func.coalesce(
            func.sum(_elapsed_seconds(dialect, visits.c.min_time, visits.c.max_time)), 0
        ).label("totaltime"),
    )
    return [dict(row) for row in db.execute(stmt).mappings().all()]


class SqlMetricsQueries:
    """Async access to the aggregation queries, one session per call."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    async def get_session_metrics(self, website_id, dimension, filter_set, limit=None, offset=None):
        return await self._run(get_session_metrics, website_id, dimension, filter_set, limit, offset)

    async def get_pageview_metrics(self, website_id, dimension, filter_set, limit=None, offset=None):
        return await self._run(get_pageview_metrics, website_id, dimension, filter_set, limit, offset)

    async def get_website_stats(self, website_id, filter_set):
        return await self._run(get_website_stats, website_id, filter_set)

    async def _run(self, query: Callable, *args):
        return await run_in_threadpool(self._execute, query, *args)

    def _execute(self, query: Callable, *args):
        db = self.session_factory()
        try:
            return query(db, *args)
        except SQLAlchemyError as e:
            logger.error(f"{query.__name__} failed: {e}", exc_info=True)
            raise QueryError(str(e)) from e
        finally:
            db.close()
