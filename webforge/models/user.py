"""
User Model

Users own sites and templates and carry a role for access control.
Email and username are globally unique.
"""
from sqlalchemy import Column, String, Boolean, DateTime, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
from webforge.database import Base
import uuid
import enum


class UserRole(str, enum.Enum):
    """
    User roles.

    ADMIN: Full access, can manage users and built-in components
    EDITOR: Can build sites, templates and custom components
    VIEWER: Read-only access
    """
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"


ROLE_HIERARCHY = {
    UserRole.VIEWER: 1,
    UserRole.EDITOR: 2,
    UserRole.ADMIN: 3,
}


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Credentials and profile
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    avatar_url = Column(String(512), nullable=True)
    preferences = Column(JSON, nullable=True, default=dict)

    role = Column(
        SQLEnum(UserRole),
        default=UserRole.EDITOR,
        nullable=False,
        index=True
    )

    # Account status
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    is_verified = Column(Boolean, default=False, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    last_login_at = Column(DateTime, nullable=True)

    # One-time tokens
    password_reset_token = Column(String(255), nullable=True, index=True)
    password_reset_expires = Column(DateTime, nullable=True)
    email_verification_token = Column(String(255), nullable=True, index=True)

    # Relationships
    sites = relationship("Site", back_populates="owner", cascade="all, delete-orphan")
    templates = relationship("Template", back_populates="creator")
    components = relationship("Component", back_populates="creator")

    def __repr__(self):
        return f"<User {self.username} ({self.email})>"

    @property
    def full_name(self):
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) or None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def has_permission(self, required_role: UserRole) -> bool:
        """
        Check if user has required permission level.

        Simple hierarchy: ADMIN > EDITOR > VIEWER
        """
        return ROLE_HIERARCHY[self.role] >= ROLE_HIERARCHY[required_role]
