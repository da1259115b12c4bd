"""
Authentication Service

Registration, login, token refresh/logout, password reset and email
verification. Endpoints in api/endpoints/auth.py are thin wrappers
around these functions.

SECURITY: Login and password-reset failures use generic messages to
prevent user enumeration. The specific reason only goes to the security
log.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from webforge.config import get_settings
from webforge.core.exceptions import AuthenticationError, BadRequestError, ConflictError
from webforge.core.security import (
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    decode_token,
    generate_secure_token,
    get_password_hash,
    revoke_token,
    validate_password_strength,
    verify_password,
)
from webforge.models.user import User, UserRole
from webforge.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)
settings = get_settings()

WEAK_PASSWORD_MESSAGE = (
    f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters and "
    "contain an uppercase letter, a lowercase letter and a digit."
)


def issue_tokens(user: User) -> Dict[str, Any]:
    """Access + refresh token pair for a user."""
    data = {"sub": user.id, "role": user.role.value}
    return {
        "access_token": create_access_token(data),
        "refresh_token": create_refresh_token(data),
        "token_type": "bearer",
        "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    }


def create_user(
    db: Session,
    username: str,
    email: str,
    password: str,
    first_name: str = None,
    last_name: str = None,
    role: UserRole = UserRole.EDITOR,
) -> User:
    """
    Create a user after uniqueness and password checks.

    Raises ConflictError for a taken email or username.
    """
    email = email.lower()
    existing = db.query(User).filter(
        or_(User.email == email, User.username == username)
    ).first()
    if existing:
        if existing.email == email:
            raise ConflictError("User with this email already exists.")
        raise ConflictError("User with this username already exists.")

    if not validate_password_strength(password):
        raise BadRequestError(WEAK_PASSWORD_MESSAGE)

    user = User(
        username=username,
        email=email,
        hashed_password=get_password_hash(password),
        first_name=first_name,
        last_name=last_name,
        role=role,
        is_active=True,
        is_verified=False,
        email_verification_token=generate_secure_token(),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def register_user(db: Session, data) -> User:
    """Self-service registration. New accounts are editors."""
    user = create_user(
        db,
        username=data.username,
        email=data.email,
        password=data.password,
        first_name=data.first_name,
        last_name=data.last_name,
    )
    # No mail delivery; the verification token is only logged
    logger.info(f"New user registered: {user.id}", extra={"user_id": user.id})
    logger.debug(f"Email verification token issued for {user.id}: {user.email_verification_token}")
    return user


def login_user(db: Session, email: str, password: str) -> Tuple[User, Dict[str, Any]]:
    """
    Authenticate by email and password.

    Returns the user and a fresh token pair.
    """
    user = db.query(User).filter(User.email == email.lower()).first()

    if not user:
        log_security_event("failed_login", {"reason": "user_not_found", "email": email}, logger)
        raise AuthenticationError("Invalid email or password.")

    if not verify_password(password, user.hashed_password):
        log_security_event("failed_login", {"reason": "invalid_password", "user_id": user.id}, logger)
        raise AuthenticationError("Invalid email or password.")

    if not user.is_active:
        log_security_event("failed_login", {"reason": "user_inactive", "user_id": user.id}, logger)
        raise AuthenticationError("Invalid email or password.")

    user.last_login_at = datetime.utcnow()
    db.commit()
    db.refresh(user)

    logger.info(f"Successful login: user={user.id}", extra={"user_id": user.id})
    return user, issue_tokens(user)


def refresh_access_token(db: Session, refresh_token: str) -> Tuple[User, Dict[str, Any]]:
    """
    Exchange a refresh token for a new pair.

    The presented refresh token is revoked (rotation), so each one works once.
    """
    payload = decode_token(refresh_token, expected_type=REFRESH_TOKEN_TYPE)
    if not payload:
        raise AuthenticationError("Invalid or expired refresh token")

    user = db.query(User).filter(User.id == payload.get("sub")).first()
    if not user or not user.is_active:
        raise AuthenticationError("Invalid or expired refresh token")

    revoke_token(payload)
    return user, issue_tokens(user)


def logout(access_payload: Dict[str, Any], refresh_token: str = None) -> None:
    """Revoke the presented access token and, if given, its refresh token."""
    revoke_token(access_payload)
    if refresh_token:
        refresh_payload = decode_token(refresh_token, expected_type=REFRESH_TOKEN_TYPE)
        if refresh_payload and refresh_payload.get("sub") == access_payload.get("sub"):
            revoke_token(refresh_payload)
    logger.info(f"User logged out: {access_payload.get('sub')}", extra={"user_id": access_payload.get("sub")})


def request_password_reset(db: Session, email: str) -> None:
    """
    Store a reset token with an expiry.

    Succeeds silently for unknown emails.
    """
    user = db.query(User).filter(User.email == email.lower()).first()
    if not user or not user.is_active:
        log_security_event("password_reset_unknown_email", {"email": email}, logger)
        return

    user.password_reset_token = generate_secure_token()
    user.password_reset_expires = datetime.utcnow() + timedelta(
        minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES
    )
    db.commit()

    log_security_event("password_reset_requested", {"user_id": user.id}, logger)
    logger.debug(f"Password reset token issued for {user.id}: {user.password_reset_token}")


def reset_password(db: Session, token: str, new_password: str) -> User:
    user = db.query(User).filter(User.password_reset_token == token).first()

    if (
        not user
        or not user.password_reset_expires
        or user.password_reset_expires < datetime.utcnow()
    ):
        raise BadRequestError("Invalid or expired password reset token.")

    if not validate_password_strength(new_password):
        raise BadRequestError(WEAK_PASSWORD_MESSAGE)

    user.hashed_password = get_password_hash(new_password)
    user.password_reset_token = None
    user.password_reset_expires = None
    db.commit()
    db.refresh(user)

    log_security_event("password_reset_completed", {"user_id": user.id}, logger)
    return user


def verify_email(db: Session, token: str) -> User:
    user = db.query(User).filter(User.email_verification_token == token).first()
    if not user:
        raise BadRequestError("Invalid email verification token.")

    user.is_verified = True
    user.email_verification_token = None
    db.commit()
    db.refresh(user)

    logger.info(f"Email verified for user {user.id}", extra={"user_id": user.id})
    return user
