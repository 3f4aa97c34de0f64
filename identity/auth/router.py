"""
Users router.

This module provides the FastAPI router for identity endpoints:
- Registration
- Login
- Directory listing (admin only)
- Current user profile
"""
from typing import Any, List
from fastapi import APIRouter, Depends, Request, status

from identity.base_microservice import BaseMicroservice
from identity.auth.errors import IdentityError, ServiceError, ValidationError
from identity.auth.jwt import AuthenticatedIdentity, IssuedToken
from identity.auth.middleware import get_base_service, get_current_identity, require_role
from identity.auth.models import Role
from identity.auth.users import UserOut, UserService

# Create router
router = APIRouter(tags=["users"])


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


async def read_json(request: Request) -> Any:
    """Parse the request body as JSON."""
    try:
        return await request.json()
    except ValueError as e:
        raise ValidationError("invalid JSON body") from e


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def register_user(
    request: Request,
    users: UserService = Depends(get_user_service),
    base_service: BaseMicroservice = Depends(get_base_service),
):
    """
    Register a new user.

    Returns:
        The created user without its password
    """
    payload = await read_json(request)
    try:
        return await users.register(payload)
    except IdentityError:
        raise
    except Exception as e:
        base_service.log_error(e, context="User registration")
        raise ServiceError("registration failed") from e


@router.post("/login", response_model=IssuedToken)
async def login(
    request: Request,
    users: UserService = Depends(get_user_service),
    base_service: BaseMicroservice = Depends(get_base_service),
):
    """
    Authenticate a user and return a bearer token.
    """
    payload = await read_json(request)
    try:
        return await users.login(payload)
    except IdentityError:
        raise
    except Exception as e:
        base_service.log_error(e, context="User login")
        raise ServiceError("login failed") from e


@router.get("", response_model=List[UserOut])
async def list_users(
    identity: AuthenticatedIdentity = Depends(require_role(Role.ADMIN)),
    users: UserService = Depends(get_user_service),
    base_service: BaseMicroservice = Depends(get_base_service),
):
    """
    List every user in the directory. Requires the admin role.
    """
    try:
        return await users.list_users()
    except IdentityError:
        raise
    except Exception as e:
        base_service.log_error(e, context="List users")
        raise ServiceError("failed to list users") from e


@router.get("/me", response_model=UserOut)
async def get_current_user_info(
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    users: UserService = Depends(get_user_service),
    base_service: BaseMicroservice = Depends(get_base_service),
):
    """
    Get information about the current authenticated user.
    """
    try:
        return await users.get_user(identity.user_id)
    except IdentityError:
        raise
    except Exception as e:
        base_service.log_error(e, context="Get current user")
        raise ServiceError("failed to get user information") from e
