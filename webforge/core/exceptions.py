"""
Custom Exceptions

Centralized exception definitions for error handling.
Every application error is an HTTPException subclass carrying its status
code, so services can raise them directly and FastAPI (plus the handlers
in main.py) turn them into JSON responses.
"""
from typing import Dict, Optional
from fastapi import HTTPException, status


class AppError(HTTPException):
    """
    Base class for operational application errors.

    error_type is echoed in the response body as "type".
    """

    error_type = "application_error"

    def __init__(
        self,
        detail: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        headers: Optional[Dict[str, str]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class BadRequestError(AppError):
    """Raised when input is well-formed but not acceptable."""

    error_type = "bad_request"

    def __init__(self, detail: str = "Bad request"):
        super().__init__(detail, status.HTTP_400_BAD_REQUEST)


class AuthenticationError(AppError):
    """Raised when authentication fails."""

    error_type = "authentication_error"

    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            detail,
            status.HTTP_401_UNAUTHORIZED,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(AppError):
    """Raised when an authenticated user lacks permission."""

    error_type = "authorization_error"

    def __init__(self, detail: str = "Permission denied"):
        super().__init__(detail, status.HTTP_403_FORBIDDEN)


class NotFoundError(AppError):
    """Raised when an entity cannot be found."""

    error_type = "not_found"
    entity = "Resource"

    def __init__(self, identifier: str = ""):
        detail = f"{self.entity} not found: {identifier}" if identifier else f"{self.entity} not found"
        super().__init__(detail, status.HTTP_404_NOT_FOUND)


class UserNotFoundError(NotFoundError):
    entity = "User"


class SiteNotFoundError(NotFoundError):
    entity = "Site"


class PageNotFoundError(NotFoundError):
    entity = "Page"


class TemplateNotFoundError(NotFoundError):
    entity = "Template"


class ComponentNotFoundError(NotFoundError):
    entity = "Component"


class DeploymentNotFoundError(NotFoundError):
    entity = "Deployment"


class VersionNotFoundError(NotFoundError):
    entity = "Site version"


class ConflictError(AppError):
    """Raised when a uniqueness or state constraint would be violated."""

    error_type = "conflict"

    def __init__(self, detail: str = "Conflict"):
        super().__init__(detail, status.HTTP_409_CONFLICT)


class CodegenError(AppError):
    """Raised when a component tree cannot be turned into code."""

    error_type = "codegen_error"

    def __init__(self, detail: str = "Invalid component structure"):
        super().__init__(detail, status.HTTP_422_UNPROCESSABLE_ENTITY)


class RateLimitExceeded(AppError):
    """Raised when rate limit is exceeded."""

    error_type = "rate_limit_exceeded"

    def __init__(self, retry_after: int = 60):
        super().__init__(
            "Rate limit exceeded. Please try again later.",
            status.HTTP_429_TOO_MANY_REQUESTS,
            headers={"Retry-After": str(retry_after)},
        )
