"""SQLAlchemy models for Beds24 connections and their encrypted secrets."""

from enum import Enum

from sqlalchemy import Column, DateTime, String, Text, UniqueConstraint
from sqlalchemy.sql import func

from sync_beds24.config import PROVIDER, SCHEMA
from sync_beds24.models.base import Base, JSONType, new_id


class ConnectionStatus(str, Enum):
    ACTIVE = "active"
    ERROR = "error"


class Connection(Base):
    """
    ORM model for a property's link to Beds24.

    Refresh tokens are never stored here; refresh_token_read_ref and
    refresh_token_write_ref point into connection_secrets. The write reference
    is NULL when the invite code only granted read access.

    Access tokens are cached per direction so a restarted process can reuse a
    token minted by another one until it expires.
    """

    __tablename__ = "connections"
    __table_args__ = (
        UniqueConstraint("hotel_id", "provider", name="uq_connections_hotel_provider"),
        {"schema": SCHEMA},
    )

    id = Column(String(36), primary_key=True, default=new_id)
    provider = Column(String(32), nullable=False, default=PROVIDER)
    org_id = Column(String(64), nullable=False, index=True)
    hotel_id = Column(String(64), nullable=False)
    external_property_id = Column(String(64), nullable=False)
    scopes = Column(JSONType, nullable=False, default=list)

    refresh_token_read_ref = Column(String(64), nullable=False)
    refresh_token_write_ref = Column(String(64), nullable=True)

    cached_access_token = Column(Text, nullable=True)
    cached_access_token_expiry = Column(DateTime(timezone=True), nullable=True)
    cached_write_access_token = Column(Text, nullable=True)
    cached_write_access_token_expiry = Column(DateTime(timezone=True), nullable=True)

    status = Column(String(16), nullable=False, default=ConnectionStatus.ACTIVE.value)
    last_error = Column(Text, nullable=True)
    last_token_use_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
