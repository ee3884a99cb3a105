"""
Unit tests for the Beds24 calendar write body.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from sync_beds24.services.inventory import build_calendar_body


@pytest.mark.unit
def test_build_calendar_body_groups_by_room() -> None:
    updates = [
        {
            "room_type_id": "rt-1",
            "date_from": date(2025, 1, 1),
            "date_to": date(2025, 1, 3),
            "num_avail": 2,
            "price": None,
        },
        {
            "room_type_id": "rt-1",
            "date_from": date(2025, 1, 4),
            "date_to": date(2025, 1, 4),
            "num_avail": None,
            "price": Decimal("99.90"),
        },
        {
            "room_type_id": "rt-2",
            "date_from": date(2025, 1, 1),
            "date_to": date(2025, 1, 1),
            "num_avail": 0,
        },
    ]

    body = build_calendar_body(updates, {"rt-1": "11", "rt-2": "room-x"})

    assert body == [
        {
            "roomId": 11,
            "calendar": [
                {"from": "2025-01-01", "to": "2025-01-03", "numAvail": 2},
                {"from": "2025-01-04", "to": "2025-01-04", "price1": 99.9},
            ],
        },
        {"roomId": "room-x", "calendar": [{"from": "2025-01-01", "to": "2025-01-01", "numAvail": 0}]},
    ]
