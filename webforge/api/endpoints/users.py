"""
User Management Endpoints

RBAC:
- List users: Admin only
- Get/update own profile: Any authenticated user
- Get user: Admin or self
- Create user: Admin only
- Update user: Admin or self (role and active flag: admin only)
- Delete user: Admin only
"""
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import Optional

from webforge.database import get_db
from webforge.models.user import User, UserRole
from webforge.schemas.user import (
    ProfileUpdate,
    UserResponse,
    UserCreate,
    UserUpdate,
    UserListResponse
)
from webforge.api.deps import get_current_user, require_admin
from webforge.services.auth import create_user as create_user_account
from webforge.core.permissions import PermissionDenied, can_modify_user
from webforge.core.exceptions import BadRequestError, ConflictError, UserNotFoundError
from webforge.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    role: Optional[UserRole] = Query(None),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    List users.

    Supports filtering by role, active status and a username/email search.
    """
    query = db.query(User)

    if role:
        query = query.filter(User.role == role)
    if is_active is not None:
        query = query.filter(User.is_active == is_active)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(User.username.ilike(pattern), User.email.ilike(pattern)))

    total = query.count()

    offset = (page - 1) * page_size
    users = query.order_by(User.created_at).offset(offset).limit(page_size).all()

    logger.debug(f"Listed {len(users)} users")

    return UserListResponse(
        users=users,
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.patch("/me/profile", response_model=UserResponse)
async def update_profile(
    profile: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update the caller's own profile fields and preferences."""
    update_data = profile.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(current_user, field, value)

    db.commit()
    db.refresh(current_user)

    logger.info(f"Profile updated: {current_user.id}")
    return current_user


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    user = db.query(User).filter(User.id == user_id).first()

    # Non-admins only see themselves; anything else looks missing
    if not user or not can_modify_user(current_user, user):
        raise UserNotFoundError(user_id)

    return user


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Create a user with any role.

    Requires admin role. The account starts unverified.
    """
    user = create_user_account(
        db,
        username=user_data.username,
        email=user_data.email,
        password=user_data.password,
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        role=user_data.role,
    )

    logger.info(f"User created: {user.id} by {current_user.id}")

    return user


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    user_data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Update user information.

    Permissions:
    - Admin: Can update any user
    - User: Can update themselves

    SECURITY: Role and active-flag changes require admin privileges.
    """
    user = db.query(User).filter(User.id == user_id).first()

    if not user:
        raise UserNotFoundError(user_id)

    if not can_modify_user(current_user, user):
        raise PermissionDenied("Not authorized to modify this user")

    update_data = user_data.model_dump(exclude_unset=True)

    if not current_user.is_admin:
        if "role" in update_data and update_data["role"] != user.role:
            raise PermissionDenied("Only admins can change user roles")
        if "is_active" in update_data and update_data["is_active"] != user.is_active:
            raise PermissionDenied("Only admins can activate or deactivate users")

    if "email" in update_data:
        update_data["email"] = update_data["email"].lower()
        taken = db.query(User).filter(User.email == update_data["email"], User.id != user.id).first()
        if taken:
            raise ConflictError("User with this email already exists.")

    for field, value in update_data.items():
        setattr(user, field, value)

    db.commit()
    db.refresh(user)

    logger.info(f"User updated: {user.id} by {current_user.id}")

    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Delete a user and, through the cascade, their sites.

    Requires admin role. Admins can't delete themselves.

    CAUTION: This is a hard delete.
    """
    user = db.query(User).filter(User.id == user_id).first()

    if not user:
        raise UserNotFoundError(user_id)

    if user.id == current_user.id:
        raise BadRequestError("Cannot delete your own account")

    db.delete(user)
    db.commit()

    logger.info(f"User deleted: {user_id} by {current_user.id}")

    return None
