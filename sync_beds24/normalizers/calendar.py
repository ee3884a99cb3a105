from datetime import date, timedelta
from typing import Any, Dict, List, Optional

import structlog

from sync_beds24.utils.datetime import parse_timestamp

logger = structlog.get_logger(__name__)


def _day(value: Any) -> Optional[date]:
    ts = parse_timestamp(value)
    return ts.date() if ts else None


def expand_calendar(rooms: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Flatten a Beds24 /inventory/rooms/calendar payload into one row per room and day.

    Beds24 returns per room a list of ranges:

        {"roomId": 11, "calendar": [{"from": "2025-01-01", "to": "2025-01-03",
                                     "numAvail": 2, "price1": 120.0,
                                     "minStay": 1, "maxStay": 30}]}

    Each range is inclusive on both ends. Later ranges override earlier ones for
    the same day.

    Returns:
        List of dicts with room_id (str), day, available, price, min_stay, max_stay
    """
    days: Dict[tuple[str, date], Dict[str, Any]] = {}

    for room in rooms:
        room_id = room.get("roomId")
        if room_id is None:
            logger.warning("calendar_room_skipped_missing_id")
            continue

        for entry in room.get("calendar") or []:
            start = _day(entry.get("from") or entry.get("date"))
            end = _day(entry.get("to")) or start
            if start is None or end is None or end < start:
                logger.warning("calendar_range_skipped", room_id=room_id, entry_from=entry.get("from"))
                continue

            current = start
            while current <= end:
                days[(str(room_id), current)] = {
                    "room_id": str(room_id),
                    "day": current,
                    "available": entry.get("numAvail"),
                    "price": entry.get("price1"),
                    "min_stay": entry.get("minStay"),
                    "max_stay": entry.get("maxStay"),
                }
                current += timedelta(days=1)

    return list(days.values())
