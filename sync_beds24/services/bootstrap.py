"""
Initial import of a newly linked hotel.

Runs after link_connection (as a FastAPI background task) and fills the record
store with the property's room types, every booking and the calendar window.
Regular syncs skip a hotel until its import has completed.
"""

from __future__ import annotations

import time
from typing import Any, Optional

import structlog
from sqlalchemy.engine import Engine

from sync_beds24.config import PROVIDER
from sync_beds24.db.locks import advisory_lock, sync_lock_key
from sync_beds24.db.readers.connections import get_connection_for_hotel
from sync_beds24.db.writers.calendar import write_calendar_days
from sync_beds24.db.writers.reservations import write_bookings
from sync_beds24.db.writers.room_types import upsert_room_types
from sync_beds24.db.writers.sync_state import update_sync_timestamps
from sync_beds24.errors import ConnectionNotFound
from sync_beds24.metrics import records_synced, sync_duration, sync_runs
from sync_beds24.network.client import Beds24Client
from sync_beds24.normalizers.calendar import expand_calendar
from sync_beds24.pollers.bookings import poll_bookings
from sync_beds24.pollers.calendar import poll_calendar
from sync_beds24.pollers.properties import poll_property
from sync_beds24.services.audit import STATUS_ERROR, STATUS_SUCCESS, record_audit
from sync_beds24.services.token_service import TokenService
from sync_beds24.singleflight import SingleFlight
from sync_beds24.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


def run_initial_import(
    engine: Engine,
    token_service: TokenService,
    hotel_id: str,
    flight: Optional[SingleFlight[dict[str, Any]]] = None,
    provider: str = PROVIDER,
) -> dict[str, Any]:
    """
    Import room types, bookings and calendar of a hotel in one transaction.

    Holds the same advisory lock as the regular sync. The bookings watermark is
    left as set at link time.

    Args:
        engine (Engine): SQLAlchemy engine
        token_service (TokenService): Shared token service
        hotel_id (str): Internal hotel/property ID
        flight (Optional[SingleFlight]): Coalesces concurrent imports of one hotel
        provider (str): Provider key

    Returns:
        dict: status (success or error) and the imported counts. Failures are
            logged and audited, not raised.
    """
    flight = flight or SingleFlight()
    return flight.do(
        (hotel_id, provider, "bootstrap"),
        lambda: _run_initial_import(engine, token_service, hotel_id, provider),
    )


def _run_initial_import(
    engine: Engine, token_service: TokenService, hotel_id: str, provider: str
) -> dict[str, Any]:
    start = time.monotonic()
    org_id = None
    logger.info("initial_import_started", hotel_id=hotel_id)

    try:
        with engine.connect() as conn:
            connection = get_connection_for_hotel(conn, hotel_id, provider)
        if connection is None:
            raise ConnectionNotFound("No connection for hotel", {"hotel_id": hotel_id})
        org_id = connection.get("org_id")
        external_property_id = connection["external_property_id"]

        with advisory_lock(engine, sync_lock_key(hotel_id, provider)):
            with sync_duration.labels(sync_type="bootstrap").time():
                client = Beds24Client(token_service, hotel_id, org_id=org_id)
                prop = poll_property(client, external_property_id)
                rooms = (prop or {}).get("roomTypes") or []
                bookings = poll_bookings(client, external_property_id)
                days = expand_calendar(poll_calendar(client, external_property_id))

                with engine.begin() as conn:
                    room_types = upsert_room_types(conn, hotel_id, rooms, provider)
                    reservations = write_bookings(conn, hotel_id, bookings, provider)
                    calendar_days = write_calendar_days(conn, hotel_id, days, provider)
                    now = utc_now()
                    update_sync_timestamps(
                        conn,
                        hotel_id,
                        provider,
                        bootstrap_completed_at=now,
                        last_bookings_sync=now,
                        last_calendar_sync=now,
                    )
    except Exception as e:
        sync_runs.labels(hotel_id=hotel_id, sync_type="bootstrap", status="failure").inc()
        record_audit(
            engine,
            operation="initial_import",
            status=STATUS_ERROR,
            hotel_id=hotel_id,
            org_id=org_id,
            error={"type": type(e).__name__, "message": str(e)},
            duration_ms=int((time.monotonic() - start) * 1000),
            provider=provider,
        )
        logger.exception("initial_import_failed", hotel_id=hotel_id, error=str(e))
        return {"hotel_id": hotel_id, "status": "error", "error": str(e)}

    counts = {
        "room_types": len(room_types),
        "bookings_processed": reservations,
        "calendar_days_processed": calendar_days,
    }
    records_synced.labels(hotel_id=hotel_id, entity_type="room_types").inc(len(room_types))
    records_synced.labels(hotel_id=hotel_id, entity_type="reservations").inc(reservations)
    records_synced.labels(hotel_id=hotel_id, entity_type="calendar_days").inc(calendar_days)
    sync_runs.labels(hotel_id=hotel_id, sync_type="bootstrap", status="success").inc()
    record_audit(
        engine,
        operation="initial_import",
        status=STATUS_SUCCESS,
        hotel_id=hotel_id,
        org_id=org_id,
        external_id=external_property_id,
        response_payload=counts,
        duration_ms=int((time.monotonic() - start) * 1000),
        provider=provider,
    )
    logger.info("initial_import_completed", hotel_id=hotel_id, **counts)
    return {"hotel_id": hotel_id, "status": "success", **counts}
