"""
API Dependencies

Reusable FastAPI dependencies for authentication and authorization.
These are used across all API endpoints to ensure consistent security.

PATTERN: FastAPI's dependency injection system is powerful and clean.
Dependencies can be composed and reused easily.
"""
from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from webforge.database import get_db
from webforge.models.user import User, UserRole
from webforge.models.site import Site
from webforge.core.security import decode_token, is_token_revoked
from webforge.core.exceptions import AuthenticationError, SiteNotFoundError
from webforge.core.permissions import PermissionDenied, can_access_site, can_modify_site
from webforge.utils.logging import get_logger, log_security_event
from jose import jwt, JWTError

logger = get_logger(__name__)

# auto_error=False so a missing header becomes our 401 rather than a bare 403
security = HTTPBearer(auto_error=False)


def _unverified_claims(token: str) -> dict:
    try:
        return jwt.get_unverified_claims(token)
    except JWTError:
        return {}


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Get current authenticated user.

    This dependency:
    1. Validates JWT token (signature, issuer, type, revocation)
    2. Loads user from database
    3. Checks user is active

    The user id is stored on request.state for the rate limiter and logs.
    """
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    token = credentials.credentials
    payload = decode_token(token)
    if not payload:
        claims = _unverified_claims(token)
        if claims and is_token_revoked(claims):
            log_security_event(
                "revoked_token_used",
                {"user_id": claims.get("sub"), "jti": claims.get("jti")},
                logger
            )
        raise AuthenticationError("Invalid or expired token")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token payload")

    # PERFORMANCE NOTE: This is a DB query on every authenticated request
    user = db.query(User).filter(User.id == user_id).first()

    if not user:
        logger.warning(f"User not found for token subject: {user_id}")
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AuthenticationError("User account is inactive")

    request.state.user_id = user.id
    request.state.token_payload = payload
    return user


async def require_admin(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Require admin role.

    Use this dependency for admin-only endpoints.
    """
    if current_user.role != UserRole.ADMIN:
        log_security_event(
            "permission_denied",
            {"user_id": current_user.id, "required_role": UserRole.ADMIN.value},
            logger
        )
        raise PermissionDenied("Admin privileges required")
    return current_user


async def require_editor(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Require editor role or higher.

    Editors and admins can access, viewers cannot.
    """
    if not current_user.has_permission(UserRole.EDITOR):
        log_security_event(
            "permission_denied",
            {"user_id": current_user.id, "required_role": UserRole.EDITOR.value},
            logger
        )
        raise PermissionDenied("Editor privileges required")
    return current_user


# Use this when endpoint supports both authenticated and anonymous access
async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """
    Get current user if authenticated, None otherwise.

    Any token problem degrades to anonymous access.
    """
    if credentials is None:
        return None

    payload = decode_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        return None

    user = db.query(User).filter(User.id == payload["sub"]).first()
    return user if user and user.is_active else None


def get_site_for_user(
    db: Session,
    site_id: str,
    user: User,
    for_update: bool = False,
    include_deleted: bool = False
) -> Site:
    """
    Load a site and check the caller may see (or change) it.

    Sites the caller cannot access are reported as missing, so ids of
    other users' sites aren't disclosed.
    """
    query = db.query(Site).filter(Site.id == site_id)
    if not include_deleted:
        query = query.filter(Site.is_deleted == False)  # noqa: E712
    site = query.first()

    if not site or not can_access_site(user, site.owner_id):
        raise SiteNotFoundError(site_id)

    if for_update and not can_modify_site(user, site.owner_id):
        raise PermissionDenied("You don't have permission to modify this site")

    return site
