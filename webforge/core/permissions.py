"""
Permission System (RBAC)

Role hierarchy plus ownership rules.

DESIGN: Roles gate what kind of action a user may take (viewers never
write); ownership decides which rows they may take it on. Admins bypass
ownership checks everywhere.
"""
from typing import Optional
from webforge.core.exceptions import AuthorizationError
from webforge.models.user import User, UserRole


class PermissionDenied(AuthorizationError):
    """Raised when a role or ownership check fails."""

    def __init__(self, detail: str = "Permission denied"):
        super().__init__(detail)


def require_role(user: User, required_role: UserRole) -> None:
    """
    Check if user has required role level.

    Raises PermissionDenied if user doesn't have sufficient permissions.

    Role hierarchy: ADMIN > EDITOR > VIEWER
    """
    if not user.has_permission(required_role):
        raise PermissionDenied(
            detail=f"This action requires {required_role.value} role or higher"
        )


def can_modify_user(current_user: User, target_user: User) -> bool:
    """
    Check if current_user can modify target_user.

    Rules:
    - Admins can modify anyone
    - Users can modify themselves
    """
    if current_user.role == UserRole.ADMIN:
        return True
    return current_user.id == target_user.id


def can_access_site(current_user: User, site_owner_id: str) -> bool:
    """Owners and admins only. Sites are never shared between users."""
    if current_user.role == UserRole.ADMIN:
        return True
    return current_user.id == site_owner_id


def can_modify_site(current_user: User, site_owner_id: str) -> bool:
    """Like can_access_site, but viewers are read-only even on their own sites."""
    if current_user.role == UserRole.VIEWER:
        return False
    return can_access_site(current_user, site_owner_id)


def can_view_template(current_user: Optional[User], visibility: str, creator_id: Optional[str]) -> bool:
    """
    Public templates are visible to everyone, including anonymous callers.
    Organization templates to any signed-in user, private ones to the
    creator (and admins).
    """
    if visibility == "public":
        return True
    if current_user is None:
        return False
    if current_user.role == UserRole.ADMIN:
        return True
    if visibility == "organization":
        return True
    return current_user.id == creator_id


def can_modify_template(current_user: User, creator_id: Optional[str]) -> bool:
    if current_user.role == UserRole.ADMIN:
        return True
    if current_user.role == UserRole.VIEWER:
        return False
    return creator_id is not None and current_user.id == creator_id


def can_modify_component(current_user: User, creator_id: Optional[str], is_custom: bool) -> bool:
    """
    Built-in components are admin-only. Custom components can be changed
    by their creator.
    """
    if current_user.role == UserRole.ADMIN:
        return True
    if not is_custom or current_user.role == UserRole.VIEWER:
        return False
    return creator_id is not None and current_user.id == creator_id
