from typing import Any, Optional

import structlog

from sync_beds24.network.client import Beds24Client

logger = structlog.get_logger(__name__)


def poll_property(client: Beds24Client, external_property_id: str) -> Optional[dict[str, Any]]:
    """
    Fetch a property with all of its room types.

    Returns:
        Optional[dict]: The Beds24 property record (with "roomTypes"), or None
            when Beds24 does not return it
    """
    properties = client.fetch_all(
        "properties",
        "property_fetch",
        {"id": external_property_id, "includeAllRooms": "true"},
    )
    for prop in properties:
        if str(prop.get("id")) == str(external_property_id):
            logger.info(
                "property_polled",
                hotel_id=client.hotel_id,
                property_id=external_property_id,
                room_types=len(prop.get("roomTypes") or []),
            )
            return prop

    logger.warning("property_not_returned", hotel_id=client.hotel_id, property_id=external_property_id)
    return None
