"""
Analytics Service

Event ingestion and reports. Reports aggregate raw events over a date
range (inclusive, default last 30 days) for one site.

PERFORMANCE NOTE: Aggregation runs on every report request. The
(site_id, occurred_at) index keeps this fine for small sites; large
sites would need rollup tables.
"""
import csv
import io
from collections import Counter
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse

from sqlalchemy import distinct, func
from sqlalchemy.orm import Session

from webforge.core.exceptions import BadRequestError, SiteNotFoundError
from webforge.models.analytics import DEVICE_TYPES, EVENT_TYPES, AnalyticsEvent
from webforge.models.site import Site
from webforge.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_RANGE_DAYS = 30
MAX_RANGE_DAYS = 366
DIRECT_SOURCE = "direct"
EXPORT_COLUMNS = ["occurred_at", "event_type", "path", "referrer", "device", "visitor_id"]


def resolve_range(start: Optional[date] = None, end: Optional[date] = None) -> Tuple[date, date]:
    end = end or datetime.utcnow().date()
    start = start or end - timedelta(days=DEFAULT_RANGE_DAYS - 1)
    if start > end:
        raise BadRequestError("Start date must not be after end date")
    if (end - start).days >= MAX_RANGE_DAYS:
        raise BadRequestError(f"Date range can span at most {MAX_RANGE_DAYS} days")
    return start, end


def _bounds(start: date, end: date) -> Tuple[datetime, datetime]:
    return datetime.combine(start, time.min), datetime.combine(end + timedelta(days=1), time.min)


def _events(db: Session, site_id: str, start: date, end: date):
    lower, upper = _bounds(start, end)
    return db.query(AnalyticsEvent).filter(
        AnalyticsEvent.site_id == site_id,
        AnalyticsEvent.occurred_at >= lower,
        AnalyticsEvent.occurred_at < upper,
    )


def record_event(db: Session, data) -> AnalyticsEvent:
    """Store one tracking event. The site must exist and be published."""
    if data.event_type not in EVENT_TYPES:
        raise BadRequestError(f"Unknown event type: {data.event_type}")
    if data.device is not None and data.device not in DEVICE_TYPES:
        raise BadRequestError(f"Unknown device type: {data.device}")

    site = db.query(Site).filter(
        Site.id == data.site_id,
        Site.is_deleted == False,  # noqa: E712
        Site.is_published == True,  # noqa: E712
    ).first()
    if not site:
        raise SiteNotFoundError(data.site_id)

    event = AnalyticsEvent(
        site_id=site.id,
        event_type=data.event_type,
        path=data.path,
        referrer=data.referrer,
        device=data.device,
        visitor_id=data.visitor_id,
        properties=data.properties,
        occurred_at=data.occurred_at or datetime.utcnow(),
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    return event


def overview(db: Session, site_id: str, start: date, end: date) -> Dict:
    events = _events(db, site_id, start, end)
    pageviews = events.filter(AnalyticsEvent.event_type == "pageview").count()
    visitors = events.with_entities(func.count(distinct(AnalyticsEvent.visitor_id))).scalar() or 0
    return {
        "start": start,
        "end": end,
        "pageviews": pageviews,
        "unique_visitors": visitors,
        "events": events.count(),
    }


def _as_date(value) -> date:
    # SQLite returns DATE() as text, PostgreSQL as a date
    if isinstance(value, str):
        return date.fromisoformat(value)
    if isinstance(value, datetime):
        return value.date()
    return value


def visitors_per_day(db: Session, site_id: str, start: date, end: date) -> List[Dict]:
    """One row per day in the range, zero-filled."""
    day = func.date(AnalyticsEvent.occurred_at)
    rows = (
        _events(db, site_id, start, end)
        .filter(AnalyticsEvent.event_type == "pageview")
        .with_entities(
            day.label("day"),
            func.count(distinct(AnalyticsEvent.visitor_id)),
            func.count(AnalyticsEvent.id),
        )
        .group_by(day)
        .all()
    )
    by_day = {_as_date(d): (visitors, views) for d, visitors, views in rows}

    result = []
    current = start
    while current <= end:
        visitors, views = by_day.get(current, (0, 0))
        result.append({"day": current, "visitors": visitors, "pageviews": views})
        current += timedelta(days=1)
    return result


def _count_by(
    db: Session,
    site_id: str,
    start: date,
    end: date,
    column,
    limit: Optional[int] = None,
    event_type: Optional[str] = None,
) -> List[Dict]:
    count = func.count(AnalyticsEvent.id)
    query = _events(db, site_id, start, end)
    if event_type:
        query = query.filter(AnalyticsEvent.event_type == event_type)
    query = (
        query
        .filter(column.isnot(None))
        .with_entities(column, count)
        .group_by(column)
        .order_by(count.desc(), column)
    )
    if limit:
        query = query.limit(limit)
    return [{"key": key, "count": n} for key, n in query.all()]


def top_pages(db: Session, site_id: str, start: date, end: date, limit: int = 10) -> List[Dict]:
    return _count_by(db, site_id, start, end, AnalyticsEvent.path, limit=limit, event_type="pageview")


def devices(db: Session, site_id: str, start: date, end: date) -> List[Dict]:
    return _count_by(db, site_id, start, end, AnalyticsEvent.device)


def referrer_source(referrer: Optional[str]) -> str:
    """Host of the referrer, without "www.", or "direct"."""
    if not referrer:
        return DIRECT_SOURCE
    host = urlparse(referrer).hostname
    if not host:
        return DIRECT_SOURCE
    return host[4:] if host.startswith("www.") else host


def sources(db: Session, site_id: str, start: date, end: date) -> List[Dict]:
    rows = (
        _events(db, site_id, start, end)
        .filter(AnalyticsEvent.event_type == "pageview")
        .with_entities(AnalyticsEvent.referrer, func.count(AnalyticsEvent.id))
        .group_by(AnalyticsEvent.referrer)
        .all()
    )
    counts = Counter()
    for referrer, n in rows:
        counts[referrer_source(referrer)] += n
    return [{"key": key, "count": n} for key, n in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))]


def export_csv(db: Session, site_id: str, start: date, end: date) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_COLUMNS)
    for event in _events(db, site_id, start, end).order_by(AnalyticsEvent.occurred_at):
        writer.writerow([
            event.occurred_at.isoformat(),
            event.event_type,
            event.path or "",
            event.referrer or "",
            event.device or "",
            event.visitor_id or "",
        ])
    return buffer.getvalue()


def delete_site_data(db: Session, site_id: str) -> int:
    """Remove all events of a site. Does not commit."""
    deleted = db.query(AnalyticsEvent).filter(
        AnalyticsEvent.site_id == site_id
    ).delete(synchronize_session=False)
    logger.info(f"Deleted {deleted} analytics events", extra={"site_id": site_id})
    return deleted
