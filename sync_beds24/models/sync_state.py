"""SQLAlchemy model for per-property sync checkpoints."""

from sqlalchemy import Boolean, Column, DateTime, String, true
from sqlalchemy.sql import func

from sync_beds24.config import SCHEMA
from sync_beds24.models.base import Base, JSONType


class SyncState(Base):
    """
    Sync checkpoints for one property and provider.

    bookings_modified_from is the incremental watermark passed to Beds24 as
    modifiedFrom. It is only ever moved forward, in the same transaction as the
    batch of bookings it covers.
    """

    __tablename__ = "sync_state"
    __table_args__ = {"schema": SCHEMA}

    hotel_id = Column(String(64), primary_key=True)
    provider = Column(String(32), primary_key=True)
    external_property_id = Column(String(64), nullable=True)
    sync_enabled = Column(Boolean, nullable=False, server_default=true(), default=True)
    bookings_modified_from = Column(DateTime(timezone=True), nullable=True)
    last_bookings_sync = Column(DateTime(timezone=True), nullable=True)
    last_calendar_sync = Column(DateTime(timezone=True), nullable=True)
    bootstrap_completed_at = Column(DateTime(timezone=True), nullable=True)
    meta = Column(JSONType, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
