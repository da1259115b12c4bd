"""
Deployment Model

One build-and-publish attempt of a site. Status moves forward through
pending -> building -> deploying -> success|failed|cancelled and every
transition is appended to the deployment's log.
"""
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index, Integer, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from webforge.database import Base
import uuid


DEPLOYMENT_STATUSES = ("pending", "building", "deploying", "success", "failed", "cancelled")
TERMINAL_STATUSES = ("success", "failed", "cancelled")
DEPLOYMENT_ENVIRONMENTS = ("production", "staging", "preview")


class Deployment(Base):
    __tablename__ = "deployments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    site_id = Column(
        String(36),
        ForeignKey("sites.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    initiator_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    status = Column(String(20), default="pending", nullable=False, index=True)
    environment = Column(String(20), default="production", nullable=False)
    version_tag = Column(String(100), nullable=True)
    build_config = Column(JSON, nullable=True, default=dict)
    logs = Column(Text, nullable=False, default="")
    deployed_url = Column(String(512), nullable=True)

    rollback_target_id = Column(
        String(36),
        ForeignKey("deployments.id", ondelete="SET NULL"),
        nullable=True
    )
    duration_seconds = Column(Integer, nullable=True)

    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    finished_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    site = relationship("Site", back_populates="deployments")
    rollback_target = relationship("Deployment", remote_side=[id])

    __table_args__ = (
        Index('idx_deployment_site_created', 'site_id', 'created_at'),
        Index('idx_deployment_site_status', 'site_id', 'status'),
    )

    def __repr__(self):
        return f"<Deployment {self.id} {self.status} (site={self.site_id})>"

    @property
    def is_finished(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def append_log(self, message: str):
        line = f"[{datetime.utcnow().isoformat()}] {message}"
        self.logs = f"{self.logs}\n{line}" if self.logs else line

    def update_status(self, status: str, message: str = None):
        """
        Move to a new status and log the transition.

        Terminal statuses stamp finished_at and duration_seconds.
        """
        if status not in DEPLOYMENT_STATUSES:
            raise ValueError(f"Unknown deployment status: {status}")
        self.status = status
        self.append_log(message or f"Status changed to {status}")
        if status in TERMINAL_STATUSES:
            self.finished_at = datetime.utcnow()
            started = self.started_at or self.finished_at
            self.duration_seconds = int((self.finished_at - started).total_seconds())
