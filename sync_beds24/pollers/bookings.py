import json
from datetime import datetime
from typing import Any, Optional

import structlog

from sync_beds24.config import DEBUG
from sync_beds24.network.client import Beds24Client
from sync_beds24.utils.datetime import to_beds24_timestamp

logger = structlog.get_logger(__name__)


def poll_bookings(
    client: Beds24Client,
    external_property_id: str,
    modified_from: Optional[datetime] = None,
) -> list[dict[str, Any]]:
    """
    Fetch raw bookings of a property from Beds24's /bookings endpoint.

    Args:
        client (Beds24Client): Client bound to the hotel's connection
        external_property_id (str): Beds24 property ID
        modified_from (Optional[datetime]): Only bookings modified at or after this
            time; None fetches every booking (initial import)

    Returns:
        list[dict]: Raw Beds24 booking records
    """
    params: dict[str, Any] = {
        "propertyId": external_property_id,
        "includeInvoiceItems": "false",
    }
    if modified_from is not None:
        params["modifiedFrom"] = to_beds24_timestamp(modified_from)

    bookings = client.fetch_all("bookings", "bookings_fetch", params)

    if DEBUG and bookings:
        logger.debug("Sample booking:\n%s", json.dumps(bookings[0], indent=2))

    logger.info(
        "bookings_polled",
        hotel_id=client.hotel_id,
        property_id=external_property_id,
        modified_from=params.get("modifiedFrom"),
        count=len(bookings),
    )
    return bookings
