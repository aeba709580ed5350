from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session
from typing import Optional
import uuid
import logging

from app.config import settings
from app.db.session import SessionLocal, get_db
from app.models.user import User
from app.api.auth import get_current_user
from app.queries.metrics import QueryError, SqlMetricsQueries
from app.schemas.metrics import MainMetricsRequest, MainMetricsResponse
from app.services.date_range import MAX_EPOCH_MS, InvalidDateRange
from app.services.metrics_service import MetricsFormatter, MetricsService
from app.services.permissions import can_view_website

logger = logging.getLogger(__name__)

router = APIRouter()


def get_metrics_service(request: Request) -> MetricsService:
    """Metrics service over the SQL queries and the name tables loaded at startup."""
    formatter = MetricsFormatter(request.app.state.name_tables, settings.ICON_BASE_URL)
    return MetricsService(
        SqlMetricsQueries(SessionLocal),
        formatter,
        dimensions=settings.BREAKDOWN_DIMENSIONS,
        default_limit=settings.DEFAULT_METRICS_LIMIT,
    )


def main_metrics_params(
    type: str = Query(..., min_length=1),
    start_at: int = Query(..., alias="startAt", ge=0, le=MAX_EPOCH_MS),
    end_at: int = Query(..., alias="endAt", ge=0, le=MAX_EPOCH_MS),
    compare: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1),
    offset: Optional[int] = Query(None, ge=0),
    search: Optional[str] = None,
    url: Optional[str] = None,
    referrer: Optional[str] = None,
    title: Optional[str] = None,
    query: Optional[str] = None,
    event: Optional[str] = None,
    host: Optional[str] = None,
    os: Optional[str] = None,
    browser: Optional[str] = None,
    device: Optional[str] = None,
    country: Optional[str] = None,
    region: Optional[str] = None,
    city: Optional[str] = None,
    tag: Optional[str] = None,
    language: Optional[str] = None,
) -> MainMetricsRequest:
    """Query parameters of the main-metrics endpoint"""
    supplied = {
        "url": url,
        "referrer": referrer,
        "title": title,
        "query": query,
        "event": event,
        "host": host,
        "os": os,
        "browser": browser,
        "device": device,
        "country": country,
        "region": region,
        "city": city,
        "tag": tag,
        "language": language,
    }
    filters = {name: value for name, value in supplied.items() if value}
    return MainMetricsRequest(
        type=type,
        start_at=start_at,
        end_at=end_at,
        compare=compare,
        limit=limit,
        offset=offset,
        search=search,
        filters=filters,
    )


@router.get("/{website_id}/main-metrics", response_model=MainMetricsResponse)
async def get_main_metrics(
    website_id: str,
    params: MainMetricsRequest = Depends(main_metrics_params),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: MetricsService = Depends(get_metrics_service),
):
    """Visit stats compared to the previous period, with os/browser/country breakdowns"""
    try:
        website_uuid = uuid.UUID(website_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid website ID format")

    if not can_view_website(current_user, website_uuid, db):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    try:
        return await service.get_main_metrics(website_uuid, params)
    except InvalidDateRange as e:
        logger.warning(f"Invalid date range for website {website_id}: {e}")
        raise HTTPException(status_code=400, detail="Invalid date range")
    except QueryError as e:
        logger.warning(f"Main metrics query failed for website {website_id}: {e}", exc_info=True)
        raise HTTPException(status_code=400, detail="Bad request")
