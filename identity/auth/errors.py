"""
Error taxonomy for the identity service.

Every failure the core can produce is an ``IdentityError`` carrying the HTTP
status it maps to and a message that is safe to show to the caller.
"""
from typing import Dict, Optional


class IdentityError(Exception):
    """Base class for per-request, recoverable failures."""
    status_code: int = 400
    default_message: str = "bad request"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def headers(self) -> Optional[Dict[str, str]]:
        return None


class ValidationError(IdentityError):
    """Malformed, missing or policy-violating input."""
    status_code = 400
    default_message = "validation error"


class ConflictError(IdentityError):
    """A unique field is already taken. Reported as 400."""
    status_code = 400
    default_message = "already exists"


class NotFoundError(IdentityError):
    status_code = 404
    default_message = "not found"


class AuthenticationError(IdentityError):
    """Missing, invalid or expired token, or wrong credentials."""
    status_code = 401
    default_message = "unauthorized"

    @property
    def headers(self) -> Optional[Dict[str, str]]:
        return {"WWW-Authenticate": "Bearer"}


class AuthorizationError(IdentityError):
    """Valid identity with an insufficient role."""
    status_code = 403
    default_message = "forbidden"


class ServiceError(IdentityError):
    """Unexpected failure. Details stay in the logs."""
    status_code = 500
    default_message = "internal server error"
