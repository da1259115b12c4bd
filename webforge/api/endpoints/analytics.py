"""
Analytics Endpoints

POST /analytics/track is public: published sites post their events to
it. Reports live under /sites/{site_id}/analytics and need read access
to the site. Every report takes an optional start/end date range.
"""
from datetime import date
from typing import List

from fastapi import APIRouter, Depends, status, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from webforge.database import get_db
from webforge.models.user import User
from webforge.schemas.analytics import (
    CountReport,
    DailyVisitors,
    OverviewReport,
    TrackEvent,
    TrackResponse,
)
from webforge.api.deps import get_current_user, get_site_for_user
from webforge.services import analytics as analytics_service

router = APIRouter(tags=["analytics"])


@router.post("/analytics/track", response_model=TrackResponse, status_code=status.HTTP_201_CREATED)
async def track_event(
    body: TrackEvent,
    db: Session = Depends(get_db)
):
    """
    Record a pageview, click or custom event.

    No auth: the site id must belong to a published site (404 otherwise).
    """
    event = analytics_service.record_event(db, body)
    return TrackResponse(id=event.id)


@router.get("/sites/{site_id}/analytics/overview", response_model=OverviewReport)
async def analytics_overview(
    site_id: str,
    start: date = Query(None),
    end: date = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    site = get_site_for_user(db, site_id, current_user)
    start, end = analytics_service.resolve_range(start, end)
    return analytics_service.overview(db, site.id, start, end)


@router.get("/sites/{site_id}/analytics/visitors", response_model=List[DailyVisitors])
async def analytics_visitors(
    site_id: str,
    start: date = Query(None),
    end: date = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Unique visitors and pageviews per day."""
    site = get_site_for_user(db, site_id, current_user)
    start, end = analytics_service.resolve_range(start, end)
    return analytics_service.visitors_per_day(db, site.id, start, end)


@router.get("/sites/{site_id}/analytics/pages", response_model=CountReport)
async def analytics_pages(
    site_id: str,
    start: date = Query(None),
    end: date = Query(None),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    site = get_site_for_user(db, site_id, current_user)
    start, end = analytics_service.resolve_range(start, end)
    items = analytics_service.top_pages(db, site.id, start, end, limit=limit)
    return CountReport(start=start, end=end, items=items)


@router.get("/sites/{site_id}/analytics/devices", response_model=CountReport)
async def analytics_devices(
    site_id: str,
    start: date = Query(None),
    end: date = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    site = get_site_for_user(db, site_id, current_user)
    start, end = analytics_service.resolve_range(start, end)
    items = analytics_service.devices(db, site.id, start, end)
    return CountReport(start=start, end=end, items=items)


@router.get("/sites/{site_id}/analytics/sources", response_model=CountReport)
async def analytics_sources(
    site_id: str,
    start: date = Query(None),
    end: date = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Pageviews grouped by referring host ("direct" when there is none)."""
    site = get_site_for_user(db, site_id, current_user)
    start, end = analytics_service.resolve_range(start, end)
    items = analytics_service.sources(db, site.id, start, end)
    return CountReport(start=start, end=end, items=items)


@router.get("/sites/{site_id}/analytics/export")
async def analytics_export(
    site_id: str,
    start: date = Query(None),
    end: date = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    site = get_site_for_user(db, site_id, current_user)
    start, end = analytics_service.resolve_range(start, end)
    content = analytics_service.export_csv(db, site.id, start, end)
    filename = f"analytics-{site.id}-{start.isoformat()}-{end.isoformat()}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )
