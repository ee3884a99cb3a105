"""SQLAlchemy model for internal <-> external identifier mappings."""

from sqlalchemy import Column, DateTime, Index, String, UniqueConstraint
from sqlalchemy.sql import func

from sync_beds24.config import SCHEMA
from sync_beds24.models.base import Base, JSONType


class ExternalIdMapping(Base):
    """
    One row per (provider, entity_type, external_id).

    The unique constraint serves external -> internal lookups and is the
    ON CONFLICT target for upserts; ix_mappings_internal serves the reverse
    direction. updated_at changes only when internal_id or meta changes.
    """

    __tablename__ = "external_id_mappings"
    __table_args__ = (
        UniqueConstraint(
            "provider", "entity_type", "external_id", name="uq_mappings_provider_entity_external"
        ),
        Index("ix_mappings_internal", "provider", "entity_type", "internal_id"),
        {"schema": SCHEMA},
    )

    id = Column(String(36), primary_key=True)
    provider = Column(String(32), nullable=False)
    entity_type = Column(String(32), nullable=False)
    external_id = Column(String(128), nullable=False)
    internal_id = Column(String(64), nullable=False)
    meta = Column(JSONType, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
