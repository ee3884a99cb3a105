import logging
from typing import Any, Iterable

from sqlalchemy.engine import Connection

from sync_beds24.config import PROVIDER
from sync_beds24.db.mappings import ENTITY_ROOM_TYPE, ensure_mapping, resolve_external_many
from sync_beds24.db.writers._upsert import upsert_with_distinct_check
from sync_beds24.models.base import new_id
from sync_beds24.models.room_types import RoomType
from sync_beds24.utils.datetime import utc_now

logger = logging.getLogger(__name__)


def upsert_room_types(
    conn: Connection,
    hotel_id: str,
    rooms: list[dict[str, Any]],
    provider: str = PROVIDER,
) -> dict[str, str]:
    """
    Upsert Beds24 room definitions as room types of a hotel.

    Args:
        conn (Connection): SQLAlchemy DB connection (inside a transaction).
        hotel_id (str): Internal hotel/property ID.
        rooms (list[dict]): Beds24 roomTypes entries ({"id", "name", "maxPeople", ...}).
        provider (str): Provider key.

    Returns:
        dict[str, str]: Beds24 room id -> internal room type id
    """
    rooms = [room for room in rooms if room.get("id") is not None]
    if not rooms:
        logger.info("No room types to upsert for hotel_id=%s", hotel_id)
        return {}

    known = resolve_external_many(conn, provider, ENTITY_ROOM_TYPE, [r["id"] for r in rooms])
    now = utc_now()
    rows = []
    for room in rooms:
        external_id = str(room["id"])
        internal_id = known.get(external_id) or new_id()
        known[external_id] = internal_id
        rows.append(
            {
                "id": internal_id,
                "hotel_id": hotel_id,
                "name": room.get("name"),
                "max_occupancy": room.get("maxPeople"),
                "raw_payload": room,
                "created_at": now,
                "updated_at": now,
            }
        )

    upsert_with_distinct_check(
        conn=conn,
        table=RoomType,
        rows=rows,
        conflict_columns=["id"],
        distinct_columns=["name", "max_occupancy", "raw_payload"],
    )
    for room in rooms:
        external_id = str(room["id"])
        ensure_mapping(
            conn, provider, ENTITY_ROOM_TYPE, external_id, known[external_id], {"hotel_id": hotel_id}
        )

    logger.info("Upserted %d room types for hotel_id=%s", len(rows), hotel_id)
    return {str(room["id"]): known[str(room["id"])] for room in rooms}


def ensure_room_types(
    conn: Connection,
    hotel_id: str,
    room_ids: Iterable[str],
    provider: str = PROVIDER,
) -> dict[str, str]:
    """
    Resolve Beds24 room ids, creating placeholder room types for unknown ones.

    Returns:
        dict[str, str]: Beds24 room id -> internal room type id
    """
    wanted = list(dict.fromkeys(str(r) for r in room_ids))
    known = resolve_external_many(conn, provider, ENTITY_ROOM_TYPE, wanted)
    missing = [room_id for room_id in wanted if room_id not in known]
    if missing:
        logger.warning(
            "Creating %d placeholder room types for hotel_id=%s: %s", len(missing), hotel_id, missing
        )
        known.update(upsert_room_types(conn, hotel_id, [{"id": r} for r in missing], provider))
    return known
