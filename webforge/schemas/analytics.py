"""
Analytics Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime, date


class TrackEvent(BaseModel):
    """Body of the public tracking endpoint."""
    site_id: str
    event_type: str
    path: Optional[str] = Field(None, max_length=512)
    referrer: Optional[str] = Field(None, max_length=1024)
    device: Optional[str] = Field(None, pattern="^(desktop|mobile|tablet)$")
    visitor_id: Optional[str] = Field(None, max_length=100)
    occurred_at: Optional[datetime] = None
    properties: Dict[str, Any] = Field(default_factory=dict)


class TrackResponse(BaseModel):
    id: str
    recorded: bool = True


class OverviewReport(BaseModel):
    start: date
    end: date
    pageviews: int
    unique_visitors: int
    events: int


class DailyVisitors(BaseModel):
    day: date
    visitors: int
    pageviews: int


class CountItem(BaseModel):
    key: str
    count: int


class CountReport(BaseModel):
    start: date
    end: date
    items: List[CountItem]
