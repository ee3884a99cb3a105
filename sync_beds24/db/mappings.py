"""
External-ID mapping repository.

Translates identifiers between this platform and Beds24 in both directions.
All functions take an active Connection so callers decide the transaction
boundary; any database error surfaces as MappingStoreError, because a lost
mapping would create a duplicate record on the next sync.
"""

from __future__ import annotations

import uuid
from typing import Any, Iterable, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from sync_beds24.db.writers._upsert import upsert_with_distinct_check
from sync_beds24.errors import MappingStoreError
from sync_beds24.models.mappings import ExternalIdMapping
from sync_beds24.utils.datetime import utc_now

logger = structlog.get_logger(__name__)

ENTITY_PROPERTY = "property"
ENTITY_ROOM_TYPE = "room_type"
ENTITY_RESERVATION = "reservation"
ENTITY_GUEST = "guest"


def resolve_external(
    conn: Connection, provider: str, entity_type: str, external_id: Any
) -> Optional[str]:
    """
    Find the internal id mapped to a Beds24 id.

    Args:
        conn: Active database connection
        provider: Provider key (e.g. "beds24")
        entity_type: Mapped entity type (e.g. "reservation")
        external_id: Beds24 identifier; converted to str

    Returns:
        The internal id, or None when no mapping exists.
    """
    stmt = select(ExternalIdMapping.internal_id).where(
        ExternalIdMapping.provider == provider,
        ExternalIdMapping.entity_type == entity_type,
        ExternalIdMapping.external_id == str(external_id),
    )
    try:
        return conn.execute(stmt).scalar_one_or_none()
    except SQLAlchemyError as e:
        raise MappingStoreError(
            "Failed to resolve external id",
            {"provider": provider, "entity_type": entity_type, "external_id": str(external_id)},
        ) from e


def reverse_lookup(
    conn: Connection, provider: str, entity_type: str, internal_id: str
) -> Optional[str]:
    """
    Find the Beds24 id for an internal id.

    If several external ids point at the same internal id, the most recently
    updated mapping wins.
    """
    stmt = (
        select(ExternalIdMapping.external_id)
        .where(
            ExternalIdMapping.provider == provider,
            ExternalIdMapping.entity_type == entity_type,
            ExternalIdMapping.internal_id == internal_id,
        )
        .order_by(ExternalIdMapping.updated_at.desc())
        .limit(1)
    )
    try:
        return conn.execute(stmt).scalar_one_or_none()
    except SQLAlchemyError as e:
        raise MappingStoreError(
            "Failed to look up external id",
            {"provider": provider, "entity_type": entity_type, "internal_id": internal_id},
        ) from e


def ensure_mapping(
    conn: Connection,
    provider: str,
    entity_type: str,
    external_id: Any,
    internal_id: str,
    metadata: Optional[dict[str, Any]] = None,
) -> None:
    """
    Idempotently map a Beds24 id to an internal id.

    Repeating the same call changes nothing. A different internal_id or
    metadata overwrites the existing row and bumps updated_at; a second row is
    never created for the same (provider, entity_type, external_id).
    """
    now = utc_now()
    row = {
        "id": str(uuid.uuid4()),
        "provider": provider,
        "entity_type": entity_type,
        "external_id": str(external_id),
        "internal_id": internal_id,
        "meta": metadata,
        "created_at": now,
        "updated_at": now,
    }
    try:
        upsert_with_distinct_check(
            conn=conn,
            table=ExternalIdMapping,
            rows=[row],
            conflict_columns=["provider", "entity_type", "external_id"],
            distinct_columns=["internal_id", "meta"],
        )
    except SQLAlchemyError as e:
        raise MappingStoreError(
            "Failed to store mapping",
            {"provider": provider, "entity_type": entity_type, "external_id": str(external_id)},
        ) from e

    logger.debug(
        "mapping_ensured",
        provider=provider,
        entity_type=entity_type,
        external_id=str(external_id),
        internal_id=internal_id,
    )


def get_mappings(
    conn: Connection, provider: str, entity_type: str, internal_ids: Iterable[str]
) -> dict[str, str]:
    """
    Batch reverse lookup: internal id -> Beds24 id, in a single query.

    Internal ids without a mapping are absent from the result.
    """
    ids = list(dict.fromkeys(internal_ids))
    if not ids:
        return {}

    stmt = (
        select(ExternalIdMapping.internal_id, ExternalIdMapping.external_id)
        .where(
            ExternalIdMapping.provider == provider,
            ExternalIdMapping.entity_type == entity_type,
            ExternalIdMapping.internal_id.in_(ids),
        )
        .order_by(ExternalIdMapping.updated_at.asc())
    )
    try:
        rows = conn.execute(stmt).all()
    except SQLAlchemyError as e:
        raise MappingStoreError(
            "Failed to load mappings", {"provider": provider, "entity_type": entity_type}
        ) from e

    # Later rows overwrite earlier ones, so the newest mapping wins
    return {internal_id: external_id for internal_id, external_id in rows}


def resolve_external_many(
    conn: Connection, provider: str, entity_type: str, external_ids: Iterable[Any]
) -> dict[str, str]:
    """Batch forward lookup: Beds24 id (as str) -> internal id, in a single query."""
    ids = list(dict.fromkeys(str(e) for e in external_ids))
    if not ids:
        return {}

    stmt = select(ExternalIdMapping.external_id, ExternalIdMapping.internal_id).where(
        ExternalIdMapping.provider == provider,
        ExternalIdMapping.entity_type == entity_type,
        ExternalIdMapping.external_id.in_(ids),
    )
    try:
        rows = conn.execute(stmt).all()
    except SQLAlchemyError as e:
        raise MappingStoreError(
            "Failed to resolve external ids", {"provider": provider, "entity_type": entity_type}
        ) from e

    return {external_id: internal_id for external_id, internal_id in rows}
