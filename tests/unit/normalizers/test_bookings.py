"""
Unit tests for booking normalization.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from sync_beds24.normalizers.bookings import (
    guest_external_id,
    latest_modified,
    map_booking_status,
    normalize_booking,
    valid_bookings,
)


@pytest.mark.unit
@pytest.mark.parametrize(
    "raw, expected",
    [
        ("confirmed", "confirmed"),
        ("New", "confirmed"),
        ("request", "requested"),
        ("cancelled", "cancelled"),
        ("black", "blocked"),
        ("inquiry", "inquiry"),
        ("something-else", "confirmed"),
        (None, "confirmed"),
    ],
)
def test_map_booking_status(raw: object, expected: str) -> None:
    assert map_booking_status(raw) == expected


@pytest.mark.unit
def test_normalize_booking() -> None:
    booking = {
        "id": 555,
        "status": "confirmed",
        "arrival": "2025-03-01",
        "departure": "2025-03-04",
        "numAdult": 2,
        "numChild": "1",
        "price": "349.50",
        "referer": "Booking.com",
        "firstName": "Ada",
        "lastName": "Lovelace",
    }

    row = normalize_booking(booking)

    assert row["status"] == "confirmed"
    assert row["check_in"] == date(2025, 3, 1)
    assert row["check_out"] == date(2025, 3, 4)
    assert row["adults"] == 2
    assert row["children"] == 1
    assert row["total_amount"] == Decimal("349.50")
    assert row["channel"] == "Booking.com"
    assert row["guest_name"] == "Ada Lovelace"
    assert row["raw_payload"] is booking


@pytest.mark.unit
def test_normalize_booking_tolerates_missing_fields() -> None:
    row = normalize_booking({"id": 1, "price": "n/a", "numAdult": ""})

    assert row["check_in"] is None
    assert row["adults"] is None
    assert row["total_amount"] is None
    assert row["guest_name"] is None


@pytest.mark.unit
def test_guest_external_id() -> None:
    assert guest_external_id({"id": 9, "guests": [{"id": 42}]}) == "42"
    assert guest_external_id({"id": 9, "guests": []}) == "9_guest_0"
    assert guest_external_id({"id": 9}) == "9_guest_0"


@pytest.mark.unit
def test_latest_modified_prefers_modified_time() -> None:
    bookings = [
        {"id": 1, "modifiedTime": "2025-01-02T10:00:00Z"},
        {"id": 2, "modified": "2025-01-03 08:30:00"},
        {"id": 3},
    ]

    assert latest_modified(bookings) == datetime(2025, 1, 3, 8, 30, tzinfo=timezone.utc)
    assert latest_modified([{"id": 1}]) is None


@pytest.mark.unit
def test_valid_bookings_drops_missing_id() -> None:
    assert valid_bookings([{"id": 1}, {"propertyId": 1001}]) == [{"id": 1}]
