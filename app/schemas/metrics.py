"""Schemas for the website main-metrics API."""
from datetime import datetime
from typing import Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


class DataPoint(BaseModel):
    """One breakdown row: a dimension value and how often it occurred."""
    x: str
    y: int = 0

    model_config = ConfigDict(frozen=True)


class FormattedItem(BaseModel):
    """A DataPoint with a resolved display name and icon locator."""
    name: str
    icon: Optional[str] = None
    x: str
    y: int = 0


class StatValue(BaseModel):
    value: Union[int, float] = 0
    prev: Union[int, float] = 0


class DateRange(BaseModel):
    start_date: datetime
    end_date: datetime

    model_config = ConfigDict(frozen=True)


class QueryFilter(BaseModel):
    name: str
    column: str
    operator: str = "eq"  # eq | neq | c | dnc
    value: str

    model_config = ConfigDict(frozen=True)


class FilterSet(BaseModel):
    """Time window plus at most one filter per dimension name."""
    start_date: datetime
    end_date: datetime
    filters: Dict[str, QueryFilter] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


class MainMetricsRequest(BaseModel):
    """Validated query parameters of a main-metrics call."""
    type: str
    start_at: int
    end_at: int
    compare: Optional[str] = None
    limit: Optional[int] = None
    offset: Optional[int] = None
    search: Optional[str] = None
    filters: Dict[str, str] = Field(default_factory=dict)
    """Raw dimension filter parameters (url, os, country, ...), only those supplied."""


class MainMetricsResponse(BaseModel):
    os: List[FormattedItem] = Field(default_factory=list)
    browser: List[FormattedItem] = Field(default_factory=list)
    country: List[FormattedItem] = Field(default_factory=list)
    stats: Dict[str, StatValue] = Field(default_factory=dict)
    # Additional configured breakdown dimensions are carried as extra keys
    model_config = ConfigDict(extra="allow")
