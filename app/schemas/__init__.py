"""Pydantic schemas"""
from app.schemas.user import UserResponse
from app.schemas.metrics import (
    DataPoint,
    FormattedItem,
    StatValue,
    DateRange,
    QueryFilter,
    FilterSet,
    MainMetricsRequest,
    MainMetricsResponse,
)

__all__ = [
    "UserResponse",
    "DataPoint",
    "FormattedItem",
    "StatValue",
    "DateRange",
    "QueryFilter",
    "FilterSet",
    "MainMetricsRequest",
    "MainMetricsResponse",
]
