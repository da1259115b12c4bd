"""
Analytics Event Model

Raw tracking events. Reports aggregate over these rows; nothing is
pre-computed.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from webforge.database import Base
import uuid


EVENT_TYPES = ("pageview", "click", "custom")
DEVICE_TYPES = ("desktop", "mobile", "tablet")


class AnalyticsEvent(Base):
    __tablename__ = "analytics_events"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    site_id = Column(
        String(36),
        ForeignKey("sites.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    event_type = Column(String(20), nullable=False)
    path = Column(String(512), nullable=True)
    referrer = Column(String(1024), nullable=True)
    device = Column(String(20), nullable=True)
    visitor_id = Column(String(100), nullable=True)
    properties = Column(JSON, nullable=True, default=dict)

    occurred_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    site = relationship("Site", back_populates="analytics_events")

    __table_args__ = (
        # Every report filters by site and date range
        Index('idx_analytics_site_occurred', 'site_id', 'occurred_at'),
        Index('idx_analytics_site_type', 'site_id', 'event_type'),
    )

    def __repr__(self):
        return f"<AnalyticsEvent {self.event_type} {self.path} (site={self.site_id})>"
