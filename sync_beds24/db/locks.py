"""
Cross-process exclusion for per-property work.

PostgreSQL session advisory locks are held on a dedicated connection for the
duration of the block. Other dialects have no cross-process lock; there only
the in-process SingleFlight serializes work.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import text
from sqlalchemy.engine import Engine

from sync_beds24.errors import SyncInProgress

logger = logging.getLogger(__name__)


def sync_lock_key(hotel_id: str, provider: str) -> str:
    return f"sync:{provider}:{hotel_id}"


@contextmanager
def advisory_lock(engine: Engine, key: str) -> Iterator[None]:
    """
    Hold a session advisory lock on key for the duration of the block.

    Raises:
        SyncInProgress: Another session holds the lock
    """
    if engine.dialect.name != "postgresql":
        yield
        return

    with engine.connect() as conn:
        acquired = conn.execute(
            text("SELECT pg_try_advisory_lock(hashtext(:key))"), {"key": key}
        ).scalar()
        conn.commit()
        if not acquired:
            logger.info("Advisory lock %s is held by another session", key)
            raise SyncInProgress("Sync already running", {"lock": key})
        try:
            yield
        finally:
            conn.execute(text("SELECT pg_advisory_unlock(hashtext(:key))"), {"key": key})
            conn.commit()
