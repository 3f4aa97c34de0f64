"""
User directory backed by SQLAlchemy.

Uniqueness of email and username is enforced by the database's unique
indexes. ``insert_unique`` is a single insert transaction, so two concurrent
registrations for the same email cannot both succeed.
"""
from typing import List, Optional
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from sqlalchemy.future import select
from identity.base_microservice import Base
from identity.auth.models import User


class DuplicateKeyError(Exception):
    """An insert collided with an existing unique email or username."""

    def __init__(self, field: Optional[str] = None):
        self.field = field
        super().__init__(f"duplicate key: {field or 'unique field'}")


def _duplicate_field(error: IntegrityError) -> Optional[str]:
    """Name the unique column an insert collided with, if any."""
    text = str(error.orig).lower()
    # SQLite: "UNIQUE constraint failed", PostgreSQL: "duplicate key value"
    if "unique" not in text and "duplicate" not in text:
        return None
    for field in ("email", "username"):
        if field in text:
            return field
    return None


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserDirectory:
    """Persistent store for User records."""

    def __init__(self, engine: AsyncEngine, session_factory: async_sessionmaker):
        self.engine = engine
        self.session_factory = session_factory

    async def create_schema(self):
        """Create missing tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self):
        await self.engine.dispose()

    async def insert_unique(self, user: User) -> User:
        """
        Insert a new user atomically.

        Args:
            user: Unsaved User record

        Returns:
            The persisted user with its id and defaults populated

        Raises:
            DuplicateKeyError: If the email or username is already taken
            IntegrityError: For any other constraint violation
        """
        user.email = normalize_email(user.email)
        async with self.session_factory() as session:
            session.add(user)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                field = _duplicate_field(e)
                if field is None:
                    raise
                raise DuplicateKeyError(field) from e
            await session.refresh(user)
            return user

    async def find_by_email(self, email: str, case_insensitive: bool = True) -> Optional[User]:
        """Look up a user by email."""
        if case_insensitive:
            condition = func.lower(User.email) == normalize_email(email)
        else:
            condition = User.email == email
        async with self.session_factory() as session:
            result = await session.execute(select(User).where(condition))
            return result.scalar_one_or_none()

    async def find_by_id(self, user_id: int) -> Optional[User]:
        async with self.session_factory() as session:
            result = await session.execute(select(User).where(User.id == user_id))
            return result.scalar_one_or_none()

    async def list_all(self) -> List[User]:
        async with self.session_factory() as session:
            result = await session.execute(select(User).order_by(User.id))
            return list(result.scalars().all())
