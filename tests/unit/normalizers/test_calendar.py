"""
Unit tests for calendar range expansion.
"""

from __future__ import annotations

from datetime import date

import pytest

from sync_beds24.normalizers.calendar import expand_calendar


@pytest.mark.unit
def test_expand_calendar_inclusive_ranges() -> None:
    rooms = [
        {
            "roomId": 11,
            "calendar": [
                {"from": "2025-01-01", "to": "2025-01-03", "numAvail": 2, "price1": 120.0},
            ],
        }
    ]

    days = expand_calendar(rooms)

    assert [d["day"] for d in days] == [date(2025, 1, 1), date(2025, 1, 2), date(2025, 1, 3)]
    assert all(d["room_id"] == "11" and d["available"] == 2 for d in days)
    assert days[0]["price"] == 120.0


@pytest.mark.unit
def test_expand_calendar_later_range_overrides() -> None:
    rooms = [
        {
            "roomId": 11,
            "calendar": [
                {"from": "2025-01-01", "to": "2025-01-02", "numAvail": 2},
                {"from": "2025-01-02", "to": "2025-01-02", "numAvail": 0},
            ],
        }
    ]

    days = {d["day"]: d for d in expand_calendar(rooms)}

    assert len(days) == 2
    assert days[date(2025, 1, 2)]["available"] == 0


@pytest.mark.unit
def test_expand_calendar_single_day_and_invalid_entries() -> None:
    rooms = [
        {"calendar": [{"from": "2025-01-01"}]},
        {
            "roomId": "12",
            "calendar": [
                {"from": "2025-02-01", "numAvail": 1},
                {"from": "2025-02-05", "to": "2025-02-03"},
                {"from": "garbage"},
            ],
        },
    ]

    days = expand_calendar(rooms)

    assert days == [
        {
            "room_id": "12",
            "day": date(2025, 2, 1),
            "available": 1,
            "price": None,
            "min_stay": None,
            "max_stay": None,
        }
    ]
