import logging
from typing import Any

from sqlalchemy.engine import Connection

from sync_beds24.config import PROVIDER
from sync_beds24.db.writers._upsert import upsert_with_distinct_check
from sync_beds24.db.writers.room_types import ensure_room_types
from sync_beds24.models.calendar import CalendarDay
from sync_beds24.utils.datetime import utc_now

logger = logging.getLogger(__name__)


def write_calendar_days(
    conn: Connection,
    hotel_id: str,
    days: list[dict[str, Any]],
    provider: str = PROVIDER,
) -> int:
    """
    Upsert expanded calendar rows (see normalizers.calendar.expand_calendar).

    Rows are keyed by (room_type_id, day); only changed availability, price or
    stay limits are rewritten.

    Returns:
        int: Number of calendar days written
    """
    if not days:
        logger.info("No calendar days to upsert for hotel_id=%s", hotel_id)
        return 0

    room_types = ensure_room_types(conn, hotel_id, {d["room_id"] for d in days}, provider)
    now = utc_now()
    rows = [
        {
            "hotel_id": hotel_id,
            "room_type_id": room_types[d["room_id"]],
            "day": d["day"],
            "available": d.get("available"),
            "price": d.get("price"),
            "min_stay": d.get("min_stay"),
            "max_stay": d.get("max_stay"),
            "created_at": now,
            "updated_at": now,
        }
        for d in days
    ]

    upsert_with_distinct_check(
        conn=conn,
        table=CalendarDay,
        rows=rows,
        conflict_columns=["room_type_id", "day"],
        distinct_columns=["available", "price", "min_stay", "max_stay"],
    )

    logger.info("Upserted %d calendar days for hotel_id=%s", len(rows), hotel_id)
    return len(rows)
