"""
Site Model

A site belongs to one owner and holds its component structure and
settings as JSON. Pages, deployments, versions and analytics events hang
off the site and are removed with it.

Sites are soft-deleted by default so an owner can restore them.
"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Index, Integer, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from webforge.database import Base
import copy
import uuid


class Site(Base):
    __tablename__ = "sites"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    owner_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    template_id = Column(
        String(36),
        ForeignKey("templates.id", ondelete="SET NULL"),
        nullable=True
    )

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # Editor state
    settings = Column(JSON, nullable=False, default=dict)
    structure = Column(JSON, nullable=False, default=dict)
    version = Column(Integer, default=1, nullable=False)

    # Publishing
    is_published = Column(Boolean, default=False, nullable=False, index=True)
    published_at = Column(DateTime, nullable=True)
    last_published_version = Column(String(255), nullable=True)

    # Hosting; NULLs don't collide under the unique constraints
    subdomain = Column(String(63), unique=True, nullable=True, index=True)
    custom_domain = Column(String(255), unique=True, nullable=True, index=True)

    seo_settings = Column(JSON, nullable=True, default=dict)
    analytics_config = Column(JSON, nullable=True, default=dict)

    is_deleted = Column(Boolean, default=False, nullable=False, index=True)
    deleted_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    owner = relationship("User", back_populates="sites")
    template = relationship("Template")
    pages = relationship(
        "Page",
        back_populates="site",
        cascade="all, delete-orphan",
        order_by="Page.order"
    )
    versions = relationship(
        "SiteVersion",
        back_populates="site",
        cascade="all, delete-orphan",
        order_by="SiteVersion.version_number.desc()"
    )
    deployments = relationship("Deployment", back_populates="site", cascade="all, delete-orphan")
    analytics_events = relationship("AnalyticsEvent", back_populates="site", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_site_owner_deleted', 'owner_id', 'is_deleted'),
        Index('idx_site_owner_name', 'owner_id', 'name'),
    )

    def __repr__(self):
        return f"<Site {self.name} (owner={self.owner_id})>"

    def publish(self):
        self.is_published = True
        self.published_at = datetime.utcnow()

    def unpublish(self):
        self.is_published = False

    def soft_delete(self):
        self.is_deleted = True
        self.deleted_at = datetime.utcnow()
        self.is_published = False

    def restore(self):
        self.is_deleted = False
        self.deleted_at = None

    def snapshot(self, created_by: str = None, description: str = None) -> "SiteVersion":
        """Capture the current structure and settings as a version record."""
        return SiteVersion(
            site_id=self.id,
            version_number=self.version,
            structure=copy.deepcopy(self.structure or {}),
            settings=copy.deepcopy(self.settings or {}),
            description=description,
            created_by=created_by
        )


class SiteVersion(Base):
    """Immutable snapshot of a site's editor state."""
    __tablename__ = "site_versions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    site_id = Column(
        String(36),
        ForeignKey("sites.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    version_number = Column(Integer, nullable=False)
    structure = Column(JSON, nullable=False, default=dict)
    settings = Column(JSON, nullable=False, default=dict)
    description = Column(String(255), nullable=True)
    created_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    site = relationship("Site", back_populates="versions")

    __table_args__ = (
        Index('idx_site_version_site_number', 'site_id', 'version_number'),
    )

    def __repr__(self):
        return f"<SiteVersion site={self.site_id} v{self.version_number}>"
