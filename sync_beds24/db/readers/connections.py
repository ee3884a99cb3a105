from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.engine import Connection

from sync_beds24.config import PROVIDER
from sync_beds24.models.connections import Connection as Beds24Connection
from sync_beds24.models.connections import ConnectionStatus


def get_connection_for_hotel(
    conn: Connection, hotel_id: str, provider: str = PROVIDER
) -> Optional[dict[str, Any]]:
    """
    Fetch the connection row of a hotel, whatever its status.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        hotel_id (str): Internal hotel/property ID.
        provider (str): Provider key.

    Returns:
        Optional[dict[str, Any]]: Connection columns, or None if the hotel is not linked.
    """
    row = (
        conn.execute(
            select(Beds24Connection.__table__).where(
                Beds24Connection.hotel_id == hotel_id,
                Beds24Connection.provider == provider,
            )
        )
        .mappings()
        .fetchone()
    )
    return dict(row) if row else None


def get_connection(conn: Connection, connection_id: str) -> Optional[dict[str, Any]]:
    """Fetch a connection row by id."""
    row = (
        conn.execute(
            select(Beds24Connection.__table__).where(Beds24Connection.id == connection_id)
        )
        .mappings()
        .fetchone()
    )
    return dict(row) if row else None


def get_active_hotel_ids(conn: Connection, provider: str = PROVIDER) -> list[str]:
    """
    List hotels with an active connection, ordered by hotel_id.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        provider (str): Provider key.

    Returns:
        list[str]: Hotel IDs
    """
    result = conn.execute(
        select(Beds24Connection.hotel_id)
        .where(
            Beds24Connection.provider == provider,
            Beds24Connection.status == ConnectionStatus.ACTIVE.value,
        )
        .order_by(Beds24Connection.hotel_id)
    )
    return list(result.scalars().all())
