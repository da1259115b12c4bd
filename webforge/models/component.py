"""
Component Model

Entries in the component library. Built-in components (is_custom=False)
are managed by admins; custom components belong to their creator.
"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Index, Integer, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from webforge.database import Base
import uuid


COMPONENT_TYPES = ("atomic", "molecule", "organism", "custom")


class Component(Base):
    __tablename__ = "components"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    name = Column(String(100), unique=True, nullable=False, index=True)
    type = Column(String(20), nullable=False, default="atomic", index=True)
    description = Column(Text, nullable=True)

    properties_schema = Column(JSON, nullable=False, default=dict)
    default_properties = Column(JSON, nullable=False, default=dict)
    # {"library": ..., "import_path": ..., "tag_name": ...}
    render_info = Column(JSON, nullable=False, default=dict)

    category = Column(String(100), nullable=True, index=True)
    tags = Column(JSON, nullable=False, default=list)

    usage_count = Column(Integer, default=0, nullable=False)
    is_custom = Column(Boolean, default=True, nullable=False)
    version = Column(String(20), default="1.0.0", nullable=False)

    creator_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    creator = relationship("User", back_populates="components")

    __table_args__ = (
        Index('idx_component_type_category', 'type', 'category'),
    )

    def __repr__(self):
        return f"<Component {self.name} ({self.type})>"

    @property
    def tag_name(self) -> str:
        return (self.render_info or {}).get("tag_name") or "div"
