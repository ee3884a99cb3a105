"""
Integration tests for sync_state checkpoints.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy.engine import Engine

from sync_beds24.db.readers.sync_state import get_sync_state
from sync_beds24.db.writers.sync_state import (
    advance_bookings_watermark,
    ensure_sync_state,
    update_sync_timestamps,
)

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)
T1 = datetime(2025, 1, 2, 12, 30, tzinfo=timezone.utc)


@pytest.mark.integration
def test_ensure_sync_state_keeps_existing_watermark(db_engine: Engine) -> None:
    with db_engine.begin() as conn:
        assert ensure_sync_state(conn, "hotel-1", "1001", T0) is True
    with db_engine.begin() as conn:
        assert ensure_sync_state(conn, "hotel-1", "2002", T1) is False

    with db_engine.connect() as conn:
        state = get_sync_state(conn, "hotel-1")

    assert state is not None
    assert state["bookings_modified_from"] == T0
    assert state["external_property_id"] == "2002"
    assert state["sync_enabled"] is True
    assert state["bootstrap_completed_at"] is None


@pytest.mark.integration
def test_watermark_moves_forward_only(db_engine: Engine) -> None:
    with db_engine.begin() as conn:
        ensure_sync_state(conn, "hotel-1", "1001", T1)

    with db_engine.begin() as conn:
        result = advance_bookings_watermark(conn, "hotel-1", T0, synced_at=T1)
    assert result == T1

    with db_engine.begin() as conn:
        advance_bookings_watermark(conn, "hotel-1", None, synced_at=T1)

    later = datetime(2025, 2, 1, tzinfo=timezone.utc)
    with db_engine.begin() as conn:
        assert advance_bookings_watermark(conn, "hotel-1", later, synced_at=later) == later

    with db_engine.connect() as conn:
        state = get_sync_state(conn, "hotel-1")
    assert state["bookings_modified_from"] == later
    assert state["last_bookings_sync"] == later


@pytest.mark.integration
def test_watermark_rolls_back_with_batch(db_engine: Engine) -> None:
    with db_engine.begin() as conn:
        ensure_sync_state(conn, "hotel-1", "1001", T0)

    with pytest.raises(RuntimeError):
        with db_engine.begin() as conn:
            advance_bookings_watermark(conn, "hotel-1", T1, synced_at=T1)
            raise RuntimeError("batch write failed")

    with db_engine.connect() as conn:
        assert get_sync_state(conn, "hotel-1")["bookings_modified_from"] == T0


@pytest.mark.integration
def test_update_sync_timestamps_rejects_unknown_columns(db_engine: Engine) -> None:
    with db_engine.begin() as conn:
        ensure_sync_state(conn, "hotel-1", "1001", T0)
        update_sync_timestamps(conn, "hotel-1", last_calendar_sync=T1)
        with pytest.raises(ValueError):
            update_sync_timestamps(conn, "hotel-1", bookings_modified_from=T1)

    with db_engine.connect() as conn:
        assert get_sync_state(conn, "hotel-1")["last_calendar_sync"] == T1
