"""
JWT token handling for authentication.

This module provides functionality for:
- Issuing signed, time-limited identity tokens
- Verifying tokens and classifying failures
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
import jwt
from pydantic import BaseModel
from identity.auth.models import Role


class TokenError(Exception):
    """Base class for token verification failures."""


class MalformedToken(TokenError):
    """The token could not be parsed or its claims are unusable."""


class InvalidTokenSignature(TokenError):
    """The signature does not match the signing key."""


class ExpiredToken(TokenError):
    """The token is past its expiry."""


class AuthenticatedIdentity(BaseModel):
    """Identity recovered from a verified token."""
    model_config = {"frozen": True}

    user_id: int
    role: Role


class IssuedToken(BaseModel):
    """Token response model."""
    token: str
    token_type: str = "bearer"
    expires_at: int  # Unix timestamp


class TokenService:
    """
    Issues and verifies signed identity tokens.

    Tokens are stateless: verification checks the signature and the clock
    and never consults the user directory.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256", default_ttl: timedelta = timedelta(minutes=60)):
        self._secret_key = secret_key
        self.algorithm = algorithm
        self.default_ttl = default_ttl

    def issue(self, user_id: int, role: Role, ttl: Optional[timedelta] = None) -> IssuedToken:
        """
        Create a token for a user.

        Args:
            user_id: User's ID
            role: User's role
            ttl: Lifetime of the token, defaults to the configured access token lifetime

        Returns:
            IssuedToken with the encoded token and its expiry
        """
        now = datetime.now(timezone.utc)
        expires = now + (ttl if ttl is not None else self.default_ttl)
        payload = {
            "sub": str(user_id),
            "role": Role.parse(role).value,
            "iat": int(now.timestamp()),
            "exp": int(expires.timestamp()),
        }
        token = jwt.encode(payload, self._secret_key, algorithm=self.algorithm)
        return IssuedToken(token=token, expires_at=payload["exp"])

    def verify(self, token: str) -> AuthenticatedIdentity:
        """
        Verify a token and return the identity it carries.

        Raises:
            MalformedToken: token cannot be decoded or has unusable claims
            InvalidTokenSignature: signature mismatch
            ExpiredToken: current time is at or past expiry
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.algorithm],
                options={"require": ["sub", "role", "iat", "exp"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise ExpiredToken("token expired") from e
        # InvalidSignatureError subclasses DecodeError, so it must come first
        except jwt.InvalidSignatureError as e:
            raise InvalidTokenSignature("signature mismatch") from e
        except jwt.PyJWTError as e:
            raise MalformedToken(str(e)) from e

        try:
            return AuthenticatedIdentity(
                user_id=int(payload["sub"]),
                role=Role.parse(payload["role"]),
            )
        except (ValueError, TypeError) as e:
            raise MalformedToken("invalid token claims") from e
