"""
Authentication middleware.

This module provides FastAPI dependencies for:
- Bearer token authentication
- Role-based access control

The authenticated identity is returned as a dependency value and passed
explicitly to the guard and the route handler.
"""
from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from identity.base_microservice import BaseMicroservice
from identity.auth.errors import AuthenticationError, AuthorizationError
from identity.auth.jwt import AuthenticatedIdentity, TokenError, TokenService
from identity.auth.models import Role

# Missing credentials are reported through AuthenticationError, not FastAPI's default
bearer_scheme = HTTPBearer(auto_error=False)


def get_base_service(request: Request) -> BaseMicroservice:
    return request.app.state.base_service


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    tokens: TokenService = Depends(get_token_service),
    auth_service: BaseMicroservice = Depends(get_base_service),
) -> AuthenticatedIdentity:
    """
    FastAPI dependency resolving the caller's identity from the bearer token.

    Raises:
        AuthenticationError: If the token is missing or fails verification
    """
    if credentials is None or not credentials.credentials:
        auth_service.log_event("auth.unauthorized", {"reason": "missing_token"})
        raise AuthenticationError("missing token")
    try:
        return tokens.verify(credentials.credentials)
    except TokenError as e:
        auth_service.logger.debug(f"Token rejected: {e.__class__.__name__}")
        auth_service.log_event("auth.unauthorized", {"reason": "invalid_token"})
        raise AuthenticationError("unauthorized") from e


class RBACMiddleware:
    """
    Role-Based Access Control.

    Creates FastAPI dependencies for protecting routes by role.
    """

    @staticmethod
    def has_role(required: Role):
        """
        Dependency to check that the caller's role satisfies ``required``.

        Args:
            required: Minimum role for the endpoint

        Returns:
            Dependency function yielding the AuthenticatedIdentity
        """
        required = Role.parse(required)

        async def verify_role(
            identity: AuthenticatedIdentity = Depends(get_current_identity),
            auth_service: BaseMicroservice = Depends(get_base_service),
        ) -> AuthenticatedIdentity:
            if not identity.role.satisfies(required):
                auth_service.log_event("auth.forbidden", {
                    "id": identity.user_id,
                    "role": identity.role.value,
                    "required": required.value,
                })
                raise AuthorizationError("forbidden")
            return identity

        return verify_role


require_role = RBACMiddleware.has_role
