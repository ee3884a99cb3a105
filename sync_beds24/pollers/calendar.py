from datetime import date, timedelta
from typing import Any, Optional

import structlog

from sync_beds24.config import CALENDAR_DAYS_AHEAD
from sync_beds24.network.client import Beds24Client

logger = structlog.get_logger(__name__)


def poll_calendar(
    client: Beds24Client,
    external_property_id: str,
    start: Optional[date] = None,
    days_ahead: int = CALENDAR_DAYS_AHEAD,
) -> list[dict[str, Any]]:
    """
    Fetch room availability, prices and stay limits from /inventory/rooms/calendar.

    Args:
        client (Beds24Client): Client bound to the hotel's connection
        external_property_id (str): Beds24 property ID
        start (Optional[date]): First day, default today
        days_ahead (int): Length of the window in days

    Returns:
        list[dict]: One entry per room with its list of calendar ranges
    """
    start = start or date.today()
    end = start + timedelta(days=days_ahead)
    params = {
        "propertyId": external_property_id,
        "startDate": start.isoformat(),
        "endDate": end.isoformat(),
        "includeNumAvail": "true",
        "includePrices": "true",
        "includeMinStay": "true",
        "includeMaxStay": "true",
    }

    rooms = client.fetch_all("inventory/rooms/calendar", "calendar_fetch", params)
    logger.info(
        "calendar_polled",
        hotel_id=client.hotel_id,
        property_id=external_property_id,
        rooms=len(rooms),
        start=params["startDate"],
        end=params["endDate"],
    )
    return rooms
