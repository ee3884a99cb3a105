from typing import Any, Optional

from sqlalchemy import and_, select
from sqlalchemy.engine import Connection

from sync_beds24.config import PROVIDER
from sync_beds24.models.connections import Connection as Beds24Connection
from sync_beds24.models.sync_state import SyncState
from sync_beds24.utils.datetime import ensure_utc

_TIMESTAMP_COLUMNS = (
    "bookings_modified_from",
    "last_bookings_sync",
    "last_calendar_sync",
    "bootstrap_completed_at",
    "last_token_use_at",
)


def _normalize(row: Any) -> dict[str, Any]:
    data = dict(row)
    for column in _TIMESTAMP_COLUMNS:
        if column in data:
            data[column] = ensure_utc(data[column])
    return data


def get_sync_state(
    conn: Connection, hotel_id: str, provider: str = PROVIDER
) -> Optional[dict[str, Any]]:
    """
    Fetch the sync checkpoints of a hotel.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        hotel_id (str): Internal hotel/property ID.
        provider (str): Provider key.

    Returns:
        Optional[dict]: sync_state columns with UTC-aware timestamps, or None
    """
    row = (
        conn.execute(
            select(SyncState.__table__).where(
                SyncState.hotel_id == hotel_id, SyncState.provider == provider
            )
        )
        .mappings()
        .fetchone()
    )
    return _normalize(row) if row else None


def get_sync_status_rows(conn: Connection, provider: str = PROVIDER) -> list[dict[str, Any]]:
    """
    Join sync_state with connections for the admin status report.

    Hotels with sync state but no connection are included with NULL connection
    columns.
    """
    stmt = (
        select(
            SyncState.hotel_id,
            SyncState.external_property_id,
            SyncState.sync_enabled,
            SyncState.bookings_modified_from,
            SyncState.last_bookings_sync,
            SyncState.last_calendar_sync,
            SyncState.bootstrap_completed_at,
            SyncState.meta,
            Beds24Connection.status.label("connection_status"),
            Beds24Connection.scopes,
            Beds24Connection.last_token_use_at,
            Beds24Connection.last_error,
        )
        .select_from(SyncState)
        .outerjoin(
            Beds24Connection,
            and_(
                Beds24Connection.hotel_id == SyncState.hotel_id,
                Beds24Connection.provider == SyncState.provider,
            ),
        )
        .where(SyncState.provider == provider)
        .order_by(SyncState.hotel_id)
    )
    return [_normalize(row) for row in conn.execute(stmt).mappings().all()]
