import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import insert, update
from sqlalchemy.engine import Connection

from sync_beds24.config import PROVIDER
from sync_beds24.db.readers.connections import get_connection_for_hotel
from sync_beds24.models.base import new_id
from sync_beds24.models.connections import Connection as Beds24Connection
from sync_beds24.models.connections import ConnectionStatus
from sync_beds24.utils.datetime import utc_now

logger = logging.getLogger(__name__)

_TOKEN_COLUMNS = {
    "read": ("cached_access_token", "cached_access_token_expiry"),
    "write": ("cached_write_access_token", "cached_write_access_token_expiry"),
}

_REFRESH_REF_COLUMNS = {
    "read": "refresh_token_read_ref",
    "write": "refresh_token_write_ref",
}


def token_columns(direction: str) -> tuple[str, str]:
    """Return the (token, expiry) column names caching tokens of a direction."""
    return _TOKEN_COLUMNS[direction]


def upsert_connection(
    conn: Connection,
    org_id: str,
    hotel_id: str,
    external_property_id: str,
    scopes: list[str],
    read_ref: str,
    write_ref: Optional[str],
    provider: str = PROVIDER,
) -> dict[str, Any]:
    """
    Create the connection of a hotel, or reactivate and re-key the existing one.

    A hotel has at most one connection per provider. Re-linking keeps the row id
    but replaces the secret references, clears every cached access token and
    resets status to active.

    Args:
        conn (Connection): SQLAlchemy DB connection (inside a transaction).
        org_id (str): Owning organization.
        hotel_id (str): Internal hotel/property ID.
        external_property_id (str): Beds24 property ID.
        scopes (list[str]): Granted scopes.
        read_ref (str): Secret reference of the read refresh token.
        write_ref (Optional[str]): Secret reference of the write refresh token.
        provider (str): Provider key.

    Returns:
        dict: The stored connection row
    """
    now = utc_now()
    values: dict[str, Any] = {
        "org_id": org_id,
        "external_property_id": external_property_id,
        "scopes": scopes,
        "refresh_token_read_ref": read_ref,
        "refresh_token_write_ref": write_ref,
        "cached_access_token": None,
        "cached_access_token_expiry": None,
        "cached_write_access_token": None,
        "cached_write_access_token_expiry": None,
        "status": ConnectionStatus.ACTIVE.value,
        "last_error": None,
        "updated_at": now,
    }

    existing = get_connection_for_hotel(conn, hotel_id, provider)
    if existing:
        conn.execute(
            update(Beds24Connection)
            .where(Beds24Connection.id == existing["id"])
            .values(**values)
        )
        logger.info(
            "Relinked connection id=%s hotel_id=%s (previous status=%s)",
            existing["id"],
            hotel_id,
            existing["status"],
        )
    else:
        conn.execute(
            insert(Beds24Connection).values(
                id=new_id(), provider=provider, hotel_id=hotel_id, created_at=now, **values
            )
        )
        logger.info("Created connection for hotel_id=%s", hotel_id)

    row = get_connection_for_hotel(conn, hotel_id, provider)
    assert row is not None
    return row


def store_access_token(
    conn: Connection,
    connection_id: str,
    direction: str,
    token: str,
    expires_at: datetime,
    refresh_ref: Optional[str] = None,
) -> None:
    """
    Persist a freshly minted access token for one direction.

    When Beds24 rotated the refresh token, refresh_ref points at the stored
    replacement and becomes the direction's refresh token reference.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        connection_id (str): Connection ID.
        direction (str): "read" or "write".
        token (str): Access token.
        expires_at (datetime): Provider expiry of the token.
        refresh_ref (Optional[str]): Secret reference of a rotated refresh token.
    """
    token_column, expiry_column = token_columns(direction)
    now = utc_now()
    values: dict[str, Any] = {
        token_column: token,
        expiry_column: expires_at,
        "last_token_use_at": now,
        "updated_at": now,
    }
    if refresh_ref is not None:
        values[_REFRESH_REF_COLUMNS[direction]] = refresh_ref
    conn.execute(
        update(Beds24Connection).where(Beds24Connection.id == connection_id).values(values)
    )


def mark_connection_error(conn: Connection, connection_id: str, error: str) -> None:
    """
    Move a connection to status=error and drop its cached tokens.

    Only a new link (upsert_connection) makes it active again.
    """
    now = utc_now()
    conn.execute(
        update(Beds24Connection)
        .where(Beds24Connection.id == connection_id)
        .values(
            status=ConnectionStatus.ERROR.value,
            last_error=error[:2000],
            cached_access_token=None,
            cached_access_token_expiry=None,
            cached_write_access_token=None,
            cached_write_access_token_expiry=None,
            updated_at=now,
        )
    )
    logger.warning("Marked connection id=%s as error: %s", connection_id, error)
