"""
Identity models.

This module defines:
- The closed set of user roles and their ranking
- The SQLAlchemy User model backing the user directory
"""
import enum
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, Enum
from identity.base_microservice import Base


class Role(str, enum.Enum):
    """User roles. Higher-ranked roles satisfy lower-ranked requirements."""
    ARTIST = "artist"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return ROLE_RANKS[self]

    def satisfies(self, required: "Role") -> bool:
        """Check if this role meets a required role."""
        return self.rank >= required.rank

    @classmethod
    def parse(cls, value) -> "Role":
        """Return the role named by ``value``; raises ValueError if unknown."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"invalid role: {value!r}")
        return cls(value)


ROLE_RANKS = {
    Role.ARTIST: 0,
    Role.ADMIN: 100,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Directory record. ``password`` only ever holds a bcrypt hash."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    firstname = Column(String, nullable=False)
    lastname = Column(String, nullable=False)
    username = Column(String, unique=True, index=True, nullable=False)
    # Stored lower-cased, so the unique index is case-insensitive
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    address = Column(String, nullable=False)
    role = Column(
        Enum(Role, name="user_role", native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=Role.ARTIST,
    )
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} role={self.role}>"
