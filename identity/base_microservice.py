"""
Base utilities shared by the identity service.

Provides:
- Logging setup and structured event/error logging
- SQLAlchemy async engine and session factory construction
- Declarative base for ORM models
"""
import os
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncEngine, AsyncSession
from sqlalchemy.orm import declarative_base

# Setup logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(message)s",
)
logger = logging.getLogger("identity")

Base = declarative_base()


def build_engine(database_url: str) -> AsyncEngine:
    """Create the async engine for the configured database."""
    kwargs: Dict[str, Any] = {"echo": False}
    if database_url.startswith("sqlite"):
        # SQLite waits on its write lock instead of failing fast
        kwargs["connect_args"] = {"timeout": 30}
    return create_async_engine(database_url, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


class BaseMicroservice:
    """
    Base class for service components. Provides:
    - A shared named logger
    - JSON event logging
    - JSON error logging
    """
    def __init__(self, service_name: str = "identity"):
        self.service_name = service_name
        self.logger = logger

    def log_event(self, event: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Log an event."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": self.service_name,
            "event": event,
            "data": details or {},
        }
        self.logger.info(f"EVENT: {json.dumps(log_data, default=str)}")
        return log_data

    def log_error(self, error: Exception, context: str = "") -> Dict[str, Any]:
        """Log an error with optional context."""
        error_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": self.service_name,
            "error": str(error),
            "error_type": error.__class__.__name__,
            "context": context or "unknown",
        }
        self.logger.error(f"ERROR: {json.dumps(error_data, default=str)}")
        return error_data
