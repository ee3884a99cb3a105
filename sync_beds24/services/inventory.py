"""Push availability and prices from the platform to Beds24."""

from __future__ import annotations

from typing import Any, Optional

import structlog
from sqlalchemy.engine import Engine

from sync_beds24.config import PROVIDER
from sync_beds24.db.mappings import ENTITY_ROOM_TYPE, get_mappings
from sync_beds24.db.readers.connections import get_connection_for_hotel
from sync_beds24.errors import ConnectionNotFound
from sync_beds24.network.client import Beds24Client
from sync_beds24.services.token_service import TokenService

logger = structlog.get_logger(__name__)


def build_calendar_body(
    updates: list[dict[str, Any]], room_ids: dict[str, str]
) -> list[dict[str, Any]]:
    """
    Group updates into the Beds24 calendar write shape.

    Example:
        >>> build_calendar_body(
        ...     [{"room_type_id": "rt-1", "date_from": date(2025, 1, 1),
        ...       "date_to": date(2025, 1, 3), "num_avail": 2, "price": None}],
        ...     {"rt-1": "11"},
        ... )
        [{'roomId': 11, 'calendar': [{'from': '2025-01-01', 'to': '2025-01-03', 'numAvail': 2}]}]
    """
    rooms: dict[str, list[dict[str, Any]]] = {}
    for update in updates:
        external = room_ids[update["room_type_id"]]
        entry: dict[str, Any] = {
            "from": update["date_from"].isoformat(),
            "to": update["date_to"].isoformat(),
        }
        if update.get("num_avail") is not None:
            entry["numAvail"] = update["num_avail"]
        if update.get("price") is not None:
            entry["price1"] = float(update["price"])
        rooms.setdefault(external, []).append(entry)

    return [
        {"roomId": int(room_id) if room_id.isdigit() else room_id, "calendar": entries}
        for room_id, entries in rooms.items()
    ]


def push_inventory(
    engine: Engine,
    token_service: TokenService,
    hotel_id: str,
    updates: list[dict[str, Any]],
    provider: str = PROVIDER,
    client: Optional[Beds24Client] = None,
) -> dict[str, Any]:
    """
    Send availability/price updates of a hotel's room types to Beds24.

    Room types without a Beds24 mapping are reported in "unmapped" and not sent.

    Args:
        engine: SQLAlchemy engine
        token_service: Shared token service (the write token is used)
        hotel_id: Internal hotel/property ID
        updates: Dicts with room_type_id, date_from, date_to, num_avail, price

    Returns:
        dict: sent (number of updates sent), unmapped (room type ids) and the
            Beds24 response

    Raises:
        ConnectionNotFound: The hotel is not linked
        NoWriteCredential: The connection was linked read-only
    """
    with engine.connect() as conn:
        connection = get_connection_for_hotel(conn, hotel_id, provider)
        if connection is None:
            raise ConnectionNotFound("No connection for hotel", {"hotel_id": hotel_id})
        room_ids = get_mappings(
            conn, provider, ENTITY_ROOM_TYPE, [u["room_type_id"] for u in updates]
        )

    unmapped = sorted({u["room_type_id"] for u in updates if u["room_type_id"] not in room_ids})
    mapped = [u for u in updates if u["room_type_id"] in room_ids]
    if unmapped:
        logger.warning("inventory_unmapped_room_types", hotel_id=hotel_id, room_type_ids=unmapped)

    if not mapped:
        return {"sent": 0, "unmapped": unmapped, "response": None}

    # Resolve the write token first so a read-only connection fails before any request
    token_service.get_access_token(hotel_id, for_write=True)

    client = client or Beds24Client(token_service, hotel_id, org_id=connection.get("org_id"))
    response = client.request(
        "POST",
        "inventory/rooms/calendar",
        "inventory_push",
        json=build_calendar_body(mapped, room_ids),
        for_write=True,
        external_id=connection["external_property_id"],
    )

    logger.info("inventory_pushed", hotel_id=hotel_id, sent=len(mapped), unmapped=len(unmapped))
    return {"sent": len(mapped), "unmapped": unmapped, "response": response}
