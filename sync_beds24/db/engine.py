"""
SQLAlchemy engine singleton with connection pooling.

Server databases get a bounded pool with a checkout timeout; SQLite URLs
(local development and tests) use the driver's default pool.
"""

from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from sync_beds24.config import DATABASE_URL, DB_POOL_TIMEOUT_SECONDS

if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set.")


def build_engine(url: str) -> Engine:
    """Create an engine for url with pool settings suited to its backend."""
    kwargs: dict[str, Any] = {"future": True, "echo": False}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs.update(
            pool_size=10,
            max_overflow=20,
            pool_pre_ping=True,
            pool_recycle=3600,
            pool_timeout=DB_POOL_TIMEOUT_SECONDS,
        )
    return create_engine(url, **kwargs)


engine: Engine = build_engine(DATABASE_URL)


def check_engine_health(target: Engine | None = None) -> bool:
    """
    Check if the database is reachable.

    Used by the /ready endpoint before the service accepts traffic.

    Returns:
        bool: True if a trivial query succeeds, False otherwise
    """
    try:
        with (target or engine).connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False
