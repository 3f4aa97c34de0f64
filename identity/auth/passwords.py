"""
Password hashing and verification.

Uses bcrypt, which salts every hash and has a configurable work factor.
The async helpers push the work onto the thread pool so a slow hash never
stalls the event loop.
"""
import bcrypt
from fastapi.concurrency import run_in_threadpool

# bcrypt only looks at the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """Salted, adaptive one-way password hashing."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """
        Generate a bcrypt hash with a fresh salt.

        Raises:
            ValueError: If the password is longer than bcrypt accepts
        """
        encoded = password.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_BYTES:
            raise ValueError(f"password cannot be longer than {BCRYPT_MAX_BYTES} bytes")
        return bcrypt.hashpw(
            encoded,
            bcrypt.gensalt(rounds=self.rounds)
        ).decode("utf-8")

    def verify(self, password: str, hashed_password: str) -> bool:
        """Constant-time check of a password against a stored hash."""
        try:
            encoded = password.encode("utf-8")
            # Older bcrypt releases truncate instead of rejecting
            if len(encoded) > BCRYPT_MAX_BYTES:
                return False
            return bcrypt.checkpw(
                encoded,
                hashed_password.encode("utf-8")
            )
        except (ValueError, TypeError, AttributeError):
            return False

    async def hash_async(self, password: str) -> str:
        return await run_in_threadpool(self.hash, password)

    async def verify_async(self, password: str, hashed_password: str) -> bool:
        return await run_in_threadpool(self.verify, password, hashed_password)
