"""
User management service.

This module provides functionality for:
- User registration with password policy checks
- User authentication and token issuance
- Directory listing and profile lookup
"""
from typing import Any, Dict, List
from datetime import datetime
import pydantic
from pydantic import BaseModel, ConfigDict, EmailStr
from identity.base_microservice import BaseMicroservice
from identity.config import Settings
from identity.auth.directory import DuplicateKeyError, UserDirectory, normalize_email
from identity.auth.errors import (
    AuthenticationError, ConflictError, NotFoundError, ValidationError
)
from identity.auth.jwt import IssuedToken, TokenService
from identity.auth.models import Role, User
from identity.auth.passwords import BCRYPT_MAX_BYTES, PasswordHasher

REQUIRED_FIELDS = (
    "firstname", "lastname", "username", "email", "password",
    "password_confirm", "phone", "address", "role",
)


# Pydantic models for request validation
class UserCreate(BaseModel):
    """Model for user registration."""
    model_config = ConfigDict(str_strip_whitespace=True, coerce_numbers_to_str=True)

    firstname: str
    lastname: str
    username: str
    email: EmailStr
    password: str
    password_confirm: str
    phone: str
    address: str
    role: str

    # Passwords and roles are taken verbatim, never stripped
    @pydantic.field_validator("password", "password_confirm", "role", mode="plain")
    @classmethod
    def keep_verbatim(cls, v):
        if not isinstance(v, str):
            raise ValueError("must be a string")
        return v


class UserLogin(BaseModel):
    """Model for user login."""
    email: str
    password: str


class UserOut(BaseModel):
    """User information returned to clients. Has no password field."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    firstname: str
    lastname: str
    username: str
    email: str
    phone: str
    address: str
    role: Role
    created_at: datetime


def _missing_fields(payload: Dict[str, Any], fields) -> List[str]:
    missing = []
    for field in fields:
        value = payload.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(field)
    return missing


def _first_error(error: pydantic.ValidationError) -> str:
    err = error.errors()[0]
    field = ".".join(str(part) for part in err.get("loc", ())) or "payload"
    if field == "email":
        return "invalid email"
    return f"invalid field: {field}"


class UserService(BaseMicroservice):
    """
    Service for registration, login and directory reads.
    """
    def __init__(
        self,
        directory: UserDirectory,
        hasher: PasswordHasher,
        tokens: TokenService,
        settings: Settings,
    ):
        super().__init__(settings.service_name)
        self.directory = directory
        self.hasher = hasher
        self.tokens = tokens
        self.password_min_length = settings.password_min_length

    def validate_registration(self, payload: Any) -> UserCreate:
        """
        Validate a registration payload.

        Returns:
            The parsed payload

        Raises:
            ValidationError: On missing fields, bad formats, password policy
                violations or an unknown role
        """
        if not isinstance(payload, dict):
            raise ValidationError("invalid payload")

        missing = _missing_fields(payload, REQUIRED_FIELDS)
        if missing:
            raise ValidationError(f"missing required field(s): {', '.join(missing)}")

        try:
            data = UserCreate.model_validate(payload)
        except pydantic.ValidationError as e:
            raise ValidationError(_first_error(e)) from e

        if len(data.password) < self.password_min_length:
            raise ValidationError("password too short")
        if len(data.password.encode("utf-8")) > BCRYPT_MAX_BYTES:
            raise ValidationError("password too long")
        if data.password != data.password_confirm:
            raise ValidationError("passwords do not match")
        try:
            Role.parse(data.role)
        except ValueError as e:
            raise ValidationError("invalid role") from e
        return data

    async def register(self, payload: Any) -> UserOut:
        """
        Register a new user.

        Args:
            payload: Raw registration body

        Returns:
            Public view of the created user

        Raises:
            ValidationError: If the payload is rejected
            ConflictError: If the email or username already exists
        """
        data = self.validate_registration(payload)
        hashed_password = await self.hasher.hash_async(data.password)

        new_user = User(
            firstname=data.firstname,
            lastname=data.lastname,
            username=data.username,
            email=normalize_email(data.email),
            password=hashed_password,
            phone=data.phone,
            address=data.address,
            role=Role.parse(data.role),
        )
        try:
            user = await self.directory.insert_unique(new_user)
        except DuplicateKeyError as e:
            self.log_event("user.registration.rejected", {"reason": "duplicate", "field": e.field})
            raise ConflictError("already exists") from e

        self.log_event("user.registered", {"id": user.id, "role": user.role.value})
        return UserOut.model_validate(user)

    async def login(self, payload: Any) -> IssuedToken:
        """
        Authenticate a user and return a token.

        Raises:
            ValidationError: If email or password is missing
            NotFoundError: If no user has that email
            AuthenticationError: If the password is wrong
        """
        if not isinstance(payload, dict) or _missing_fields(payload, ("email", "password")):
            raise ValidationError("email and password are required")
        try:
            credentials = UserLogin.model_validate(payload)
        except pydantic.ValidationError as e:
            raise ValidationError("email and password are required") from e

        user = await self.directory.find_by_email(credentials.email, case_insensitive=True)
        if user is None:
            self.log_event("user.login.failed", {"reason": "not_found"})
            raise NotFoundError("user not found")

        if not await self.hasher.verify_async(credentials.password, user.password):
            self.log_event("user.login.failed", {"reason": "bad_password", "id": user.id})
            raise AuthenticationError("invalid credentials")

        token = self.tokens.issue(user.id, user.role)
        self.log_event("user.login", {"id": user.id})
        return token

    async def get_user(self, user_id: int) -> UserOut:
        user = await self.directory.find_by_id(user_id)
        if user is None:
            raise NotFoundError("user not found")
        return UserOut.model_validate(user)

    async def list_users(self) -> List[UserOut]:
        users = await self.directory.list_all()
        return [UserOut.model_validate(u) for u in users]
