from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

import structlog

from sync_beds24.utils.datetime import parse_timestamp

logger = structlog.get_logger(__name__)

BOOKING_STATUS_MAP: Dict[str, str] = {
    "confirmed": "confirmed",
    "new": "confirmed",
    "request": "requested",
    "cancelled": "cancelled",
    "black": "blocked",
    "inquiry": "inquiry",
}
DEFAULT_BOOKING_STATUS = "confirmed"


def map_booking_status(raw_status: Any) -> str:
    """Translate a Beds24 booking status into the platform's reservation status."""
    if raw_status is None:
        return DEFAULT_BOOKING_STATUS
    return BOOKING_STATUS_MAP.get(str(raw_status).lower(), DEFAULT_BOOKING_STATUS)


def booking_modified_at(booking: Dict[str, Any]) -> Optional[datetime]:
    """Return the last-modified time of a booking (modifiedTime, falling back to modified)."""
    return parse_timestamp(booking.get("modifiedTime") or booking.get("modified"))


def latest_modified(bookings: Iterable[Dict[str, Any]]) -> Optional[datetime]:
    """
    Return the newest modification time among bookings, or None.

    Used as the next watermark: Beds24 treats modifiedFrom as inclusive, so the
    newest booking is fetched again on the next run and simply re-upserted.
    """
    stamps = [ts for ts in (booking_modified_at(b) for b in bookings) if ts is not None]
    return max(stamps) if stamps else None


def guest_external_id(booking: Dict[str, Any]) -> str:
    """
    Return the Beds24-side identifier of a booking's primary guest.

    Beds24 only assigns ids to guests returned in the guests array; the booker
    of a booking without one is keyed as "<bookingId>_guest_0".
    """
    guests = booking.get("guests") or []
    if guests and isinstance(guests[0], dict) and guests[0].get("id") is not None:
        return str(guests[0]["id"])
    return f"{booking['id']}_guest_0"


def _parse_date(value: Any) -> Optional[date]:
    ts = parse_timestamp(value)
    return ts.date() if ts else None


def _parse_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None and value != "" else None
    except (TypeError, ValueError):
        return None


def _parse_amount(value: Any) -> Optional[Decimal]:
    try:
        return Decimal(str(value)) if value is not None and value != "" else None
    except InvalidOperation:
        return None


def normalize_booking(booking: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map a raw Beds24 booking to reservation columns.

    The returned dict does not contain id, hotel_id or room_type_id; those are
    resolved through the mapping repository by the writer.
    """
    guest_name = " ".join(
        part for part in (booking.get("firstName"), booking.get("lastName")) if part
    ).strip()

    return {
        "status": map_booking_status(booking.get("status")),
        "check_in": _parse_date(booking.get("arrival")),
        "check_out": _parse_date(booking.get("departure")),
        "adults": _parse_int(booking.get("numAdult")),
        "children": _parse_int(booking.get("numChild")),
        "total_amount": _parse_amount(booking.get("price")),
        "channel": booking.get("channel") or booking.get("referer"),
        "guest_name": guest_name or None,
        "raw_payload": booking,
    }


def valid_bookings(bookings: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Drop bookings without an id, logging each one."""
    kept = []
    for booking in bookings:
        if booking.get("id") is None:
            logger.warning("booking_skipped_missing_id", property_id=booking.get("propertyId"))
            continue
        kept.append(booking)
    return kept
