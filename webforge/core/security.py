"""
Security Module

Handles password hashing, JWT token generation/validation and token
revocation. Uses passlib with bcrypt and python-jose.

SECURITY NOTES:
- Passwords are hashed with bcrypt
- Access tokens are short-lived; refresh tokens carry type="refresh"
- Every token has a jti so a single token can be revoked on logout
"""
import re
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from passlib.context import CryptContext
from webforge.config import get_settings
from webforge.core.cache import get_cache

settings = get_settings()

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS
)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash.

    Empty input or a malformed hash counts as a mismatch.
    """
    if not plain_password or not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


def get_password_hash(password: str) -> str:
    """
    Hash a password using bcrypt.

    NOTE: This is intentionally slow. Don't call it in tight loops.
    """
    if not password:
        raise ValueError("Password cannot be empty.")
    return pwd_context.hash(password)


def validate_password_strength(password: str) -> bool:
    """Minimum length plus at least one upper, one lower and one digit."""
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        return False
    return all((
        re.search(r"[A-Z]", password),
        re.search(r"[a-z]", password),
        re.search(r"[0-9]", password),
    ))


def generate_secure_token(length: int = 40) -> str:
    """URL-safe random token for password resets and email verification."""
    # token_urlsafe takes bytes; 3 bytes encode to 4 characters
    return secrets.token_urlsafe((length * 3 + 3) // 4)[:length]


def _create_token(data: Dict[str, Any], token_type: str, expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    to_encode = data.copy()
    to_encode.update({
        "type": token_type,
        "iss": settings.TOKEN_ISSUER,
        "jti": str(uuid.uuid4()),
        "iat": now,
        "exp": now + expires_delta,
    })
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Payload includes sub (user id), role, type, iss, jti, iat and exp.
    """
    return _create_token(
        data,
        ACCESS_TOKEN_TYPE,
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )


def create_refresh_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Refresh tokens only carry the subject."""
    return _create_token(
        {"sub": data["sub"]},
        REFRESH_TOKEN_TYPE,
        expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    )


def decode_token(token: str, expected_type: Optional[str] = ACCESS_TOKEN_TYPE) -> Optional[Dict[str, Any]]:
    """
    Decode and verify a JWT token.

    Returns the payload if valid, None if invalid, expired, revoked or
    of the wrong type.
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            issuer=settings.TOKEN_ISSUER
        )
    except JWTError:
        return None

    if expected_type and payload.get("type") != expected_type:
        return None

    if is_token_revoked(payload):
        return None

    return payload


def revoke_token(payload: Dict[str, Any]) -> None:
    """Blacklist a token's jti until the token would have expired anyway."""
    jti = payload.get("jti")
    if not jti:
        return
    exp = payload.get("exp")
    remaining = int(exp - datetime.now(timezone.utc).timestamp()) if exp else 0
    if remaining <= 0:
        return
    get_cache().set(f"revoked:{jti}", True, ttl=remaining)


def is_token_revoked(payload: Dict[str, Any]) -> bool:
    jti = payload.get("jti")
    return bool(jti) and get_cache().exists(f"revoked:{jti}")
