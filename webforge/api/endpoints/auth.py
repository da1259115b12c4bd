"""
Authentication Endpoints

Registration, login, token refresh and logout, password reset and email
verification. The logic lives in services/auth.py.
"""
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session
from typing import Optional

from webforge.database import get_db
from webforge.models.user import User
from webforge.schemas.auth import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    Token,
)
from webforge.schemas.user import UserResponse
from webforge.services import auth as auth_service
from webforge.api.deps import get_current_user
from webforge.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    registration: RegisterRequest,
    db: Session = Depends(get_db)
):
    """
    Register a new user.

    New accounts get the editor role and start unverified. Email and
    username must be unique (409 otherwise).
    """
    return auth_service.register_user(db, registration)


@router.post("/login", response_model=AuthResponse)
async def login(
    credentials: LoginRequest,
    db: Session = Depends(get_db)
):
    """
    Authenticate user and return an access/refresh token pair.

    SECURITY: Unknown email, wrong password and inactive account all
    return the same 401 to prevent user enumeration.
    """
    user, tokens = auth_service.login_user(db, credentials.email, credentials.password)
    return AuthResponse(user=user, **tokens)


@router.post("/refresh-token", response_model=Token)
async def refresh_token(
    body: RefreshRequest,
    db: Session = Depends(get_db)
):
    """
    Exchange a refresh token for a new token pair.

    Refresh tokens are single use: the presented one is revoked.
    """
    _, tokens = auth_service.refresh_access_token(db, body.refresh_token)
    return Token(**tokens)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    request: Request,
    body: Optional[RefreshRequest] = None,
    current_user: User = Depends(get_current_user)
):
    """Revoke the current access token (and the refresh token, if sent)."""
    auth_service.logout(
        request.state.token_payload,
        refresh_token=body.refresh_token if body else None
    )
    return None


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    db: Session = Depends(get_db)
):
    """
    Start a password reset.

    Always answers the same way, whether or not the email is registered.
    """
    auth_service.request_password_reset(db, body.email)
    return MessageResponse(message="If the email is registered, a reset link has been sent.")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    body: ResetPasswordRequest,
    db: Session = Depends(get_db)
):
    auth_service.reset_password(db, body.token, body.new_password)
    return MessageResponse(message="Password has been reset.")


@router.get("/verify-email/{token}", response_model=MessageResponse)
async def verify_email(
    token: str,
    db: Session = Depends(get_db)
):
    auth_service.verify_email(db, token)
    return MessageResponse(message="Email verified.")
