import json
from typing import Any

import structlog
from sqlalchemy.engine import Connection

from sync_beds24.config import DEBUG, PROVIDER
from sync_beds24.db.mappings import (
    ENTITY_GUEST,
    ENTITY_RESERVATION,
    ENTITY_ROOM_TYPE,
    ensure_mapping,
    resolve_external_many,
)
from sync_beds24.db.writers._upsert import upsert_with_distinct_check
from sync_beds24.models.base import new_id
from sync_beds24.models.reservations import Reservation
from sync_beds24.normalizers.bookings import guest_external_id, normalize_booking, valid_bookings
from sync_beds24.utils.datetime import utc_now

logger = structlog.get_logger(__name__)

_RESERVATION_COLUMNS = [
    "room_type_id",
    "guest_id",
    "status",
    "check_in",
    "check_out",
    "adults",
    "children",
    "total_amount",
    "channel",
    "guest_name",
    "raw_payload",
]


def write_bookings(
    conn: Connection,
    hotel_id: str,
    bookings: list[dict[str, Any]],
    provider: str = PROVIDER,
) -> int:
    """
    Upsert Beds24 bookings as reservations of a hotel.

    Each booking is keyed by its Beds24 id through the mapping repository, so
    writing the same batch twice updates the same reservations. Reservation
    and guest mappings are created for bookings seen for the first time.

    Args:
        conn (Connection): SQLAlchemy DB connection (inside the batch transaction).
        hotel_id (str): Internal hotel/property ID.
        bookings (list[dict]): Raw Beds24 bookings.
        provider (str): Provider key.

    Returns:
        int: Number of reservations written
    """
    bookings = valid_bookings(bookings)
    if not bookings:
        logger.info("no_bookings_to_write", hotel_id=hotel_id)
        return 0

    reservation_ids = resolve_external_many(
        conn, provider, ENTITY_RESERVATION, [b["id"] for b in bookings]
    )
    guest_ids = resolve_external_many(
        conn, provider, ENTITY_GUEST, [guest_external_id(b) for b in bookings]
    )
    room_type_ids = resolve_external_many(
        conn,
        provider,
        ENTITY_ROOM_TYPE,
        [b["roomId"] for b in bookings if b.get("roomId") is not None],
    )

    now = utc_now()
    rows: dict[str, dict[str, Any]] = {}
    new_reservations: dict[str, str] = {}
    new_guests: dict[str, str] = {}

    for booking in bookings:
        external_id = str(booking["id"])
        reservation_id = reservation_ids.get(external_id)
        if reservation_id is None:
            reservation_id = new_id()
            reservation_ids[external_id] = reservation_id
            new_reservations[external_id] = reservation_id

        guest_key = guest_external_id(booking)
        guest_id = guest_ids.get(guest_key)
        if guest_id is None:
            guest_id = new_id()
            guest_ids[guest_key] = guest_id
            new_guests[guest_key] = guest_id

        room_id = booking.get("roomId")
        rows[reservation_id] = {
            "id": reservation_id,
            "hotel_id": hotel_id,
            "room_type_id": room_type_ids.get(str(room_id)) if room_id is not None else None,
            "guest_id": guest_id,
            **normalize_booking(booking),
            "created_at": now,
            "updated_at": now,
        }

    if DEBUG:
        sample = next(iter(rows.values()))
        logger.debug("Sample reservation to upsert:\n%s", json.dumps(sample, indent=2, default=str))

    upsert_with_distinct_check(
        conn=conn,
        table=Reservation,
        rows=list(rows.values()),
        conflict_columns=["id"],
        distinct_columns=["raw_payload", "room_type_id"],
        update_columns=[*_RESERVATION_COLUMNS, "updated_at"],
    )

    for external_id, reservation_id in new_reservations.items():
        ensure_mapping(
            conn, provider, ENTITY_RESERVATION, external_id, reservation_id, {"hotel_id": hotel_id}
        )
    for external_id, guest_id in new_guests.items():
        ensure_mapping(conn, provider, ENTITY_GUEST, external_id, guest_id, {"hotel_id": hotel_id})

    logger.info(
        "reservations_written",
        hotel_id=hotel_id,
        count=len(rows),
        new_reservations=len(new_reservations),
    )
    return len(rows)
