"""
Integration tests for the external-ID mapping repository.
"""

from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.engine import Engine

from sync_beds24.db.mappings import (
    ENTITY_RESERVATION,
    ENTITY_ROOM_TYPE,
    ensure_mapping,
    get_mappings,
    resolve_external,
    resolve_external_many,
    reverse_lookup,
)
from sync_beds24.models.mappings import ExternalIdMapping


def _count(engine: Engine) -> int:
    with engine.connect() as conn:
        return conn.execute(select(func.count()).select_from(ExternalIdMapping)).scalar_one()


@pytest.mark.integration
def test_ensure_mapping_is_idempotent(db_engine: Engine) -> None:
    with db_engine.begin() as conn:
        ensure_mapping(conn, "beds24", ENTITY_RESERVATION, 555, "res-1", {"hotel_id": "hotel-1"})
        ensure_mapping(conn, "beds24", ENTITY_RESERVATION, "555", "res-1", {"hotel_id": "hotel-1"})

    assert _count(db_engine) == 1
    with db_engine.connect() as conn:
        assert resolve_external(conn, "beds24", ENTITY_RESERVATION, 555) == "res-1"
        assert reverse_lookup(conn, "beds24", ENTITY_RESERVATION, "res-1") == "555"


@pytest.mark.integration
def test_ensure_mapping_overwrites_internal_id(db_engine: Engine) -> None:
    with db_engine.begin() as conn:
        ensure_mapping(conn, "beds24", ENTITY_RESERVATION, "555", "res-1")
    with db_engine.begin() as conn:
        ensure_mapping(conn, "beds24", ENTITY_RESERVATION, "555", "res-2")

    assert _count(db_engine) == 1
    with db_engine.connect() as conn:
        assert resolve_external(conn, "beds24", ENTITY_RESERVATION, "555") == "res-2"
        assert reverse_lookup(conn, "beds24", ENTITY_RESERVATION, "res-1") is None


@pytest.mark.integration
def test_mappings_are_scoped_by_provider_and_entity(db_engine: Engine) -> None:
    with db_engine.begin() as conn:
        ensure_mapping(conn, "beds24", ENTITY_RESERVATION, "11", "res-1")
        ensure_mapping(conn, "beds24", ENTITY_ROOM_TYPE, "11", "rt-1")
        ensure_mapping(conn, "other", ENTITY_ROOM_TYPE, "11", "rt-x")

    with db_engine.connect() as conn:
        assert resolve_external(conn, "beds24", ENTITY_ROOM_TYPE, "11") == "rt-1"
        assert resolve_external(conn, "other", ENTITY_ROOM_TYPE, "11") == "rt-x"
        assert resolve_external(conn, "beds24", ENTITY_ROOM_TYPE, "12") is None


@pytest.mark.integration
def test_batch_lookups(db_engine: Engine) -> None:
    with db_engine.begin() as conn:
        ensure_mapping(conn, "beds24", ENTITY_ROOM_TYPE, "11", "rt-1")
        ensure_mapping(conn, "beds24", ENTITY_ROOM_TYPE, "12", "rt-2")

    with db_engine.connect() as conn:
        assert get_mappings(conn, "beds24", ENTITY_ROOM_TYPE, ["rt-1", "rt-2", "rt-9"]) == {
            "rt-1": "11",
            "rt-2": "12",
        }
        assert resolve_external_many(conn, "beds24", ENTITY_ROOM_TYPE, [11, "12", 13]) == {
            "11": "rt-1",
            "12": "rt-2",
        }
        assert get_mappings(conn, "beds24", ENTITY_ROOM_TYPE, []) == {}
