"""Property-level sync orchestrator for the Beds24 integration."""

from __future__ import annotations

import threading
import time
from datetime import timedelta
from typing import Any, Optional

import structlog
from sqlalchemy.engine import Engine

from sync_beds24.config import DEFAULT_BOOKINGS_LOOKBACK_DAYS, DRY_RUN, PROVIDER
from sync_beds24.db.locks import advisory_lock, sync_lock_key
from sync_beds24.db.readers.connections import get_connection_for_hotel
from sync_beds24.db.readers.sync_state import get_sync_state, get_sync_status_rows
from sync_beds24.db.writers.calendar import write_calendar_days
from sync_beds24.db.writers.reservations import write_bookings
from sync_beds24.db.writers.sync_state import advance_bookings_watermark, update_sync_timestamps
from sync_beds24.errors import Beds24SyncError, SyncInProgress
from sync_beds24.metrics import records_synced, sync_duration, sync_runs
from sync_beds24.models.connections import ConnectionStatus
from sync_beds24.network.client import Beds24Client
from sync_beds24.normalizers.bookings import latest_modified
from sync_beds24.normalizers.calendar import expand_calendar
from sync_beds24.pollers.bookings import poll_bookings
from sync_beds24.pollers.calendar import poll_calendar
from sync_beds24.services.audit import STATUS_ERROR, STATUS_SUCCESS, record_audit
from sync_beds24.services.token_service import TokenService
from sync_beds24.singleflight import SingleFlight
from sync_beds24.utils.datetime import utc_now

logger = structlog.get_logger(__name__)

SYNC_TYPES = ("bookings", "calendar", "both")

SKIP_CONNECTION_ERROR = "connection_error"
SKIP_SYNC_DISABLED = "sync_disabled"
SKIP_BOOTSTRAP_PENDING = "bootstrap_pending"
SKIP_IN_PROGRESS = "in_progress"
SKIP_UNLINKED = "unlinked"


def derive_health(row: dict[str, Any]) -> str:
    """Summarize a sync status row as ok, bootstrapping, error, disabled or unlinked."""
    if row.get("connection_status") is None:
        return "unlinked"
    if row["connection_status"] == ConnectionStatus.ERROR.value:
        return "error"
    if not row.get("sync_enabled"):
        return "disabled"
    if row.get("bootstrap_completed_at") is None:
        return "bootstrapping"
    return "ok"


def get_sync_status(engine: Engine, provider: str = PROVIDER) -> list[dict[str, Any]]:
    """
    Report sync checkpoints and connection health for every hotel with sync state.

    Returns:
        list[dict]: One entry per hotel, ordered by hotel_id
    """
    with engine.connect() as conn:
        rows = get_sync_status_rows(conn, provider)

    properties = []
    for row in rows:
        row["metadata"] = row.pop("meta", None) or {}
        row["health"] = derive_health(row)
        properties.append(row)
    return properties


class SyncOrchestrator:
    """
    Runs bookings and calendar syncs for linked hotels.

    At most one sync per (hotel, provider) runs at a time. Callers in this
    process asking for the same sync type share the running sync's result,
    a different type waits for it to finish, and other processes are turned
    away by the advisory lock.

    Example:
        >>> orchestrator = SyncOrchestrator(engine, token_service)
        >>> orchestrator.trigger_sync("bookings", hotel_id="hotel-1")
        {'type': 'bookings', 'hotels': [...], 'bookings_processed': 3, ...}
    """

    def __init__(
        self,
        engine: Engine,
        token_service: TokenService,
        flight: Optional[SingleFlight[dict[str, Any]]] = None,
        provider: str = PROVIDER,
        dry_run: bool = DRY_RUN,
    ):
        self.engine = engine
        self.token_service = token_service
        self.flight: SingleFlight[dict[str, Any]] = flight or SingleFlight()
        self.provider = provider
        self.dry_run = dry_run
        self._hotel_locks: dict[tuple[str, str], threading.Lock] = {}
        self._hotel_locks_guard = threading.Lock()

    def trigger_sync(self, sync_type: str, hotel_id: Optional[str] = None) -> dict[str, Any]:
        """
        Sync one hotel, or every hotel with sync state.

        Args:
            sync_type (str): bookings, calendar or both
            hotel_id (Optional[str]): Restrict the run to one hotel

        Returns:
            dict: type, per-hotel results, totals and the list of errors
        """
        if sync_type not in SYNC_TYPES:
            raise ValueError(f"Unsupported sync type {sync_type!r}; expected one of {SYNC_TYPES}")

        if hotel_id is not None:
            hotel_ids = [hotel_id]
        else:
            with self.engine.connect() as conn:
                hotel_ids = [row["hotel_id"] for row in get_sync_status_rows(conn, self.provider)]

        logger.info("sync_started", sync_type=sync_type, hotels=len(hotel_ids))

        results = []
        for current in hotel_ids:
            try:
                results.append(self.sync_hotel(current, sync_type))
            except Exception as e:
                logger.exception("hotel_sync_failed", hotel_id=current, error=str(e))
                results.append({"hotel_id": current, "status": "error", "error": str(e)})

        summary = {
            "type": sync_type,
            "hotels": results,
            "bookings_processed": sum(r.get("bookings_processed", 0) for r in results),
            "calendar_days_processed": sum(r.get("calendar_days_processed", 0) for r in results),
            "errors": [
                {"hotel_id": r["hotel_id"], "error": r["error"]}
                for r in results
                if r["status"] == "error"
            ],
        }
        logger.info(
            "sync_completed",
            sync_type=sync_type,
            hotels=len(results),
            bookings_processed=summary["bookings_processed"],
            calendar_days_processed=summary["calendar_days_processed"],
            errors=len(summary["errors"]),
        )
        return summary

    def sync_hotel(self, hotel_id: str, sync_type: str) -> dict[str, Any]:
        """
        Sync one hotel unless it is not eligible.

        Returns:
            dict: hotel_id, status (success, skipped or error) and counts, or the
                skip reason
        """
        with self.engine.connect() as conn:
            connection = get_connection_for_hotel(conn, hotel_id, self.provider)
            state = get_sync_state(conn, hotel_id, self.provider)

        reason = None
        if connection is None or state is None:
            reason = SKIP_UNLINKED
        elif connection["status"] == ConnectionStatus.ERROR.value:
            reason = SKIP_CONNECTION_ERROR
        elif not state["sync_enabled"]:
            reason = SKIP_SYNC_DISABLED
        elif state["bootstrap_completed_at"] is None:
            reason = SKIP_BOOTSTRAP_PENDING

        if reason is not None:
            logger.info("hotel_sync_skipped", hotel_id=hotel_id, reason=reason)
            sync_runs.labels(hotel_id=hotel_id, sync_type=sync_type, status="skipped").inc()
            return {"hotel_id": hotel_id, "status": "skipped", "reason": reason}

        assert connection is not None
        try:
            return self.flight.do(
                (hotel_id, self.provider, sync_type),
                lambda: self._run_locked(connection, sync_type),
            )
        except SyncInProgress:
            logger.info("hotel_sync_skipped", hotel_id=hotel_id, reason=SKIP_IN_PROGRESS)
            sync_runs.labels(hotel_id=hotel_id, sync_type=sync_type, status="skipped").inc()
            return {"hotel_id": hotel_id, "status": "skipped", "reason": SKIP_IN_PROGRESS}

    def _hotel_lock(self, hotel_id: str) -> threading.Lock:
        with self._hotel_locks_guard:
            return self._hotel_locks.setdefault((hotel_id, self.provider), threading.Lock())

    def _run_locked(self, connection: dict[str, Any], sync_type: str) -> dict[str, Any]:
        hotel_id = connection["hotel_id"]
        with self._hotel_lock(hotel_id):
            with advisory_lock(self.engine, sync_lock_key(hotel_id, self.provider)):
                return self._run(connection, sync_type)

    def _run(self, connection: dict[str, Any], sync_type: str) -> dict[str, Any]:
        hotel_id = connection["hotel_id"]
        client = Beds24Client(self.token_service, hotel_id, org_id=connection.get("org_id"))
        result: dict[str, Any] = {
            "hotel_id": hotel_id,
            "status": "success",
            "bookings_processed": 0,
            "calendar_days_processed": 0,
        }
        start = time.monotonic()

        try:
            with sync_duration.labels(sync_type=sync_type).time():
                if sync_type in ("bookings", "both"):
                    result["bookings_processed"] = self.sync_bookings(client, connection)
                if sync_type in ("calendar", "both"):
                    result["calendar_days_processed"] = self.sync_calendar(client, connection)
        except Exception as e:
            sync_runs.labels(hotel_id=hotel_id, sync_type=sync_type, status="failure").inc()
            message = e.message if isinstance(e, Beds24SyncError) else str(e)
            record_audit(
                self.engine,
                operation=f"sync_{sync_type}",
                status=STATUS_ERROR,
                hotel_id=hotel_id,
                org_id=connection.get("org_id"),
                external_id=connection["external_property_id"],
                error={"type": type(e).__name__, "message": message},
                duration_ms=int((time.monotonic() - start) * 1000),
                provider=self.provider,
            )
            logger.exception("hotel_sync_failed", hotel_id=hotel_id, sync_type=sync_type)
            return {**result, "status": "error", "error": message}

        sync_runs.labels(hotel_id=hotel_id, sync_type=sync_type, status="success").inc()
        record_audit(
            self.engine,
            operation=f"sync_{sync_type}",
            status=STATUS_SUCCESS,
            hotel_id=hotel_id,
            org_id=connection.get("org_id"),
            external_id=connection["external_property_id"],
            response_payload={
                "bookings_processed": result["bookings_processed"],
                "calendar_days_processed": result["calendar_days_processed"],
            },
            duration_ms=int((time.monotonic() - start) * 1000),
            provider=self.provider,
        )
        return result

    def sync_bookings(self, client: Beds24Client, connection: dict[str, Any]) -> int:
        """
        Fetch bookings modified since the watermark and write them in one transaction.

        The watermark advances in the same transaction, so a failed batch leaves
        it where it was.
        """
        hotel_id = connection["hotel_id"]
        with self.engine.connect() as conn:
            state = get_sync_state(conn, hotel_id, self.provider)
        watermark = (state or {}).get("bookings_modified_from") or (
            utc_now() - timedelta(days=DEFAULT_BOOKINGS_LOOKBACK_DAYS)
        )

        started_at = utc_now()
        bookings = poll_bookings(client, connection["external_property_id"], watermark)

        if self.dry_run:
            logger.info("dry_run_skip_write", hotel_id=hotel_id, bookings=len(bookings))
            return 0

        with self.engine.begin() as conn:
            processed = write_bookings(conn, hotel_id, bookings, self.provider)
            new_watermark = advance_bookings_watermark(
                conn, hotel_id, latest_modified(bookings), started_at, self.provider
            )

        records_synced.labels(hotel_id=hotel_id, entity_type="reservations").inc(processed)
        logger.info(
            "bookings_synced",
            hotel_id=hotel_id,
            processed=processed,
            watermark=new_watermark.isoformat() if new_watermark else None,
        )
        return processed

    def sync_calendar(self, client: Beds24Client, connection: dict[str, Any]) -> int:
        """Fetch the calendar window and upsert it as calendar days in one transaction."""
        hotel_id = connection["hotel_id"]
        rooms = poll_calendar(client, connection["external_property_id"])
        days = expand_calendar(rooms)

        if self.dry_run:
            logger.info("dry_run_skip_write", hotel_id=hotel_id, calendar_days=len(days))
            return 0

        with self.engine.begin() as conn:
            processed = write_calendar_days(conn, hotel_id, days, self.provider)
            update_sync_timestamps(conn, hotel_id, self.provider, last_calendar_sync=utc_now())

        records_synced.labels(hotel_id=hotel_id, entity_type="calendar_days").inc(processed)
        logger.info("calendar_synced", hotel_id=hotel_id, processed=processed)
        return processed
