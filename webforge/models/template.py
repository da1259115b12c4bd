"""
Template Model

Templates are reusable starting structures for sites. Public templates
are visible to everyone; private ones only to their creator.
"""
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index, Integer, Float, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from webforge.database import Base
import uuid


TEMPLATE_VISIBILITIES = ("public", "private", "organization")


class Template(Base):
    __tablename__ = "templates"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    preview_image_url = Column(String(512), nullable=True)

    # JSON lists keep this portable between SQLite and PostgreSQL
    categories = Column(JSON, nullable=False, default=list)
    tags = Column(JSON, nullable=False, default=list)

    content_structure = Column(JSON, nullable=False, default=dict)
    default_components = Column(JSON, nullable=False, default=list)
    compatibility_info = Column(String(255), nullable=True)

    creator_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    visibility = Column(String(20), default="private", nullable=False, index=True)

    usage_count = Column(Integer, default=0, nullable=False)
    average_rating = Column(Float, default=0.0, nullable=False)
    rating_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    creator = relationship("User", back_populates="templates")

    __table_args__ = (
        Index('idx_template_visibility_usage', 'visibility', 'usage_count'),
    )

    def __repr__(self):
        return f"<Template {self.name} ({self.visibility})>"

    def add_rating(self, rating: int):
        """Fold a 1-5 rating into the running average."""
        total = self.average_rating * self.rating_count + rating
        self.rating_count += 1
        self.average_rating = round(total / self.rating_count, 2)
