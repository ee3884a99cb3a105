"""Beds24 booking webhook receiver route."""

import hmac
import time
from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine

from sync_beds24.config import PROVIDER, WEBHOOK_SECRET
from sync_beds24.db.mappings import ENTITY_PROPERTY, resolve_external
from sync_beds24.db.readers.connections import get_connection_for_hotel
from sync_beds24.db.writers.reservations import write_bookings
from sync_beds24.dependencies import get_db_engine
from sync_beds24.metrics import records_synced
from sync_beds24.services.audit import STATUS_ERROR, STATUS_SUCCESS, record_audit

router = APIRouter()
logger = structlog.get_logger(__name__)

WEBHOOK_OPERATION = "webhook_booking"


def validate_webhook_secret(provided: Optional[str]) -> bool:
    """
    Compare the X-Webhook-Secret header with WEBHOOK_SECRET in constant time.

    Returns:
        bool: False when either value is missing or they differ
    """
    if not provided or not WEBHOOK_SECRET:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), WEBHOOK_SECRET.encode("utf-8"))


def extract_booking(payload: dict[str, Any]) -> Optional[dict[str, Any]]:
    """
    Return the booking carried by a webhook payload.

    Beds24 sends {"timeStamp": ..., "booking": {...}, "infoItems": [...]}; a bare
    booking object (with an id and propertyId) is accepted as well.
    """
    booking = payload.get("booking")
    if isinstance(booking, dict):
        return booking
    if payload.get("id") is not None and payload.get("propertyId") is not None:
        return payload
    return None


def handle_booking(engine: Engine, booking: dict[str, Any], payload: dict[str, Any]) -> JSONResponse:
    """
    Upsert a pushed booking into the hotel mapped to its Beds24 property.

    The bookings watermark is left alone; the next incremental sync still
    picks the booking up by its modification time.
    """
    external_property_id = str(booking["propertyId"])
    with engine.connect() as conn:
        hotel_id = resolve_external(conn, PROVIDER, ENTITY_PROPERTY, external_property_id)
        connection = (
            get_connection_for_hotel(conn, hotel_id, PROVIDER) if hotel_id is not None else None
        )

    if hotel_id is None or connection is None:
        logger.warning("webhook_unknown_property", property_id=external_property_id)
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": f"Property {external_property_id} is not linked"},
        )

    start = time.monotonic()
    try:
        with engine.begin() as conn:
            processed = write_bookings(conn, hotel_id, [booking], PROVIDER)
    except Exception as e:
        record_audit(
            engine,
            operation=WEBHOOK_OPERATION,
            status=STATUS_ERROR,
            hotel_id=hotel_id,
            org_id=connection.get("org_id"),
            external_id=external_property_id,
            request_payload=payload,
            error={"type": type(e).__name__, "message": str(e)},
            duration_ms=int((time.monotonic() - start) * 1000),
            provider=PROVIDER,
        )
        logger.exception(
            "webhook_processing_failed",
            hotel_id=hotel_id,
            booking_id=booking.get("id"),
            error=str(e),
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    record_audit(
        engine,
        operation=WEBHOOK_OPERATION,
        status=STATUS_SUCCESS,
        hotel_id=hotel_id,
        org_id=connection.get("org_id"),
        external_id=external_property_id,
        request_payload=payload,
        response_payload={"bookings_processed": processed},
        duration_ms=int((time.monotonic() - start) * 1000),
        provider=PROVIDER,
    )
    records_synced.labels(hotel_id=hotel_id, entity_type="reservations").inc(processed)

    # Key identifiers only; guest details stay out of the logs
    logger.info(
        "webhook_booking_written",
        hotel_id=hotel_id,
        booking_id=booking.get("id"),
        property_id=external_property_id,
        status=booking.get("status"),
    )
    return JSONResponse(content={"status": "accepted", "bookings_processed": processed})


@router.post("/webhook")
async def receive_beds24_webhook(
    request: Request, engine: Engine = Depends(get_db_engine)
) -> JSONResponse:
    """
    Handle booking pushes from Beds24.

    Authentication: X-Webhook-Secret header matching WEBHOOK_SECRET

    Expected payload structure from Beds24:
        {
            "timeStamp": "2025-03-01T10:00:00Z",
            "booking": {"id": 123, "propertyId": 1001, "roomId": 11, ...},
            "infoItems": [...]
        }

    Payloads without a booking are acknowledged and ignored.

    Returns:
        JSONResponse: Acknowledgment response
    """
    if not validate_webhook_secret(request.headers.get("X-Webhook-Secret")):
        logger.warning("Webhook authentication failed")
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"error": "Unauthorized"},
        )

    try:
        payload = await request.json()
    except ValueError:
        logger.exception("Failed to parse webhook payload")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid JSON"},
        )
    if not isinstance(payload, dict):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid JSON"},
        )

    booking = extract_booking(payload)
    if booking is None:
        logger.warning("webhook_without_booking", keys=sorted(payload))
        # Return 200 anyway - don't fail on payloads we don't handle
        return JSONResponse(content={"status": "ignored"})

    logger.info(
        "webhook_received",
        booking_id=booking.get("id"),
        property_id=booking.get("propertyId"),
    )

    if booking.get("id") is None or booking.get("propertyId") is None:
        logger.warning("webhook_booking_missing_ids", keys=sorted(booking))
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Booking is missing id or propertyId"},
        )

    return handle_booking(engine, booking, payload)
