import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import insert, or_, update
from sqlalchemy.engine import Connection

from sync_beds24.config import PROVIDER
from sync_beds24.db.readers.sync_state import get_sync_state
from sync_beds24.models.sync_state import SyncState
from sync_beds24.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)


def ensure_sync_state(
    conn: Connection,
    hotel_id: str,
    external_property_id: str,
    watermark: datetime,
    provider: str = PROVIDER,
) -> bool:
    """
    Create the sync_state row of a hotel if it does not exist yet.

    An existing row keeps its watermark; only external_property_id is refreshed.

    Returns:
        bool: True if a row was created
    """
    now = utc_now()
    if get_sync_state(conn, hotel_id, provider):
        conn.execute(
            update(SyncState)
            .where(SyncState.hotel_id == hotel_id, SyncState.provider == provider)
            .values(external_property_id=external_property_id, updated_at=now)
        )
        return False

    conn.execute(
        insert(SyncState).values(
            hotel_id=hotel_id,
            provider=provider,
            external_property_id=external_property_id,
            sync_enabled=True,
            bookings_modified_from=watermark,
            meta={},
            created_at=now,
            updated_at=now,
        )
    )
    logger.info("Created sync_state for hotel_id=%s watermark=%s", hotel_id, watermark)
    return True


def advance_bookings_watermark(
    conn: Connection,
    hotel_id: str,
    new_watermark: Optional[datetime],
    synced_at: datetime,
    provider: str = PROVIDER,
) -> Optional[datetime]:
    """
    Record a finished bookings batch and move the watermark forward.

    Must run in the transaction that wrote the batch. The watermark is only
    replaced by a strictly later value, so it never moves backwards even if a
    stale run commits late.

    Returns:
        Optional[datetime]: The watermark after the update
    """
    state = get_sync_state(conn, hotel_id, provider)
    current = state["bookings_modified_from"] if state else None
    candidate = ensure_utc(new_watermark)

    conn.execute(
        update(SyncState)
        .where(SyncState.hotel_id == hotel_id, SyncState.provider == provider)
        .values(last_bookings_sync=synced_at, updated_at=synced_at)
    )

    if candidate is None or (current is not None and candidate <= current):
        return current

    conn.execute(
        update(SyncState)
        .where(
            SyncState.hotel_id == hotel_id,
            SyncState.provider == provider,
            or_(
                SyncState.bookings_modified_from.is_(None),
                SyncState.bookings_modified_from < candidate,
            ),
        )
        .values(bookings_modified_from=candidate)
    )
    logger.info(
        "Advanced bookings watermark hotel_id=%s from=%s to=%s", hotel_id, current, candidate
    )
    return candidate


def update_sync_timestamps(
    conn: Connection, hotel_id: str, provider: str = PROVIDER, **timestamps: Any
) -> None:
    """
    Set last_calendar_sync / last_bookings_sync / bootstrap_completed_at.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        hotel_id (str): Internal hotel/property ID.
        provider (str): Provider key.
        **timestamps: Column name -> datetime
    """
    allowed = {"last_calendar_sync", "last_bookings_sync", "bootstrap_completed_at"}
    unknown = set(timestamps) - allowed
    if unknown:
        raise ValueError(f"Unsupported sync_state columns: {sorted(unknown)}")

    conn.execute(
        update(SyncState)
        .where(SyncState.hotel_id == hotel_id, SyncState.provider == provider)
        .values(updated_at=utc_now(), **timestamps)
    )
