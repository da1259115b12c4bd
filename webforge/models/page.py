"""
Page Model

Pages are sub-entities of a site: Site -> Page.
A page's content is a component tree rendered by the codegen services.
"""
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index, Integer, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from webforge.database import Base
import uuid


PAGE_STATUSES = ("draft", "published", "archived")


class Page(Base):
    __tablename__ = "pages"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    site_id = Column(
        String(36),
        ForeignKey("sites.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    title = Column(String(255), nullable=False)
    path = Column(String(255), nullable=False)  # "/", "/about", "/blog/post"
    content = Column(JSON, nullable=False, default=dict)

    # SEO
    seo_title = Column(String(255), nullable=True)
    seo_description = Column(Text, nullable=True)
    seo_keywords = Column(JSON, nullable=True, default=list)

    layout = Column(String(100), nullable=True)
    parent_id = Column(
        String(36),
        ForeignKey("pages.id", ondelete="SET NULL"),
        nullable=True
    )
    order = Column(Integer, default=0, nullable=False)

    status = Column(String(20), default="draft", nullable=False, index=True)
    published_at = Column(DateTime, nullable=True)
    scheduled_publish_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    site = relationship("Site", back_populates="pages")
    parent = relationship("Page", remote_side=[id])

    __table_args__ = (
        UniqueConstraint('site_id', 'path', name='uq_page_site_path'),
        Index('idx_page_site_status', 'site_id', 'status'),
    )

    def __repr__(self):
        return f"<Page {self.path} (site={self.site_id})>"

    def publish(self):
        self.status = "published"
        self.published_at = datetime.utcnow()
        # A manual publish cancels any pending schedule
        self.scheduled_publish_at = None

    def unpublish(self):
        self.status = "draft"
        self.published_at = None

    def schedule_publish(self, when: datetime):
        self.scheduled_publish_at = when

    def is_due(self, now: datetime = None) -> bool:
        """True when a scheduled publish time has passed."""
        now = now or datetime.utcnow()
        return (
            self.status == "draft"
            and self.scheduled_publish_at is not None
            and self.scheduled_publish_at <= now
        )
