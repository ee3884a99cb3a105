"""SQLAlchemy model for the append-only audit trail of Beds24 calls."""

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from sync_beds24.config import SCHEMA
from sync_beds24.models.base import Base, JSONType


class AuditLogEntry(Base):
    """
    One external call (or one logical operation) against Beds24.

    Rows are inserted by db.writers.audit only, with payloads already redacted.
    request_cost, limit_remaining and limit_resets_in mirror the Beds24 credit
    headers of the response.
    """

    __tablename__ = "ingestion_audit"
    __table_args__ = {"schema": SCHEMA}

    id = Column(String(36), primary_key=True)
    provider = Column(String(32), nullable=False)
    operation = Column(String(64), nullable=False, index=True)
    status = Column(String(16), nullable=False)
    hotel_id = Column(String(64), nullable=True, index=True)
    org_id = Column(String(64), nullable=True)
    external_id = Column(String(128), nullable=True)
    request_payload = Column(JSONType, nullable=True)
    response_payload = Column(JSONType, nullable=True)
    error_message = Column(Text, nullable=True)
    duration_ms = Column(Integer, nullable=True)
    request_cost = Column(Integer, nullable=True)
    limit_remaining = Column(Integer, nullable=True)
    limit_resets_in = Column(Integer, nullable=True)
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
