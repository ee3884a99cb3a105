# models/reservations.py

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.sql import func

from sync_beds24.config import SCHEMA
from sync_beds24.models.base import Base, JSONType, qualified


class Reservation(Base):
    """
    ORM model for reservations imported from Beds24 bookings.

    The internal id is a UUID; the Beds24 booking id is kept in
    external_id_mappings (entity_type "reservation") so repeated syncs update
    the same row. raw_payload holds the full Beds24 booking.
    """

    __tablename__ = "reservations"
    __table_args__ = {"schema": SCHEMA}

    id = Column(String(36), primary_key=True)
    hotel_id = Column(String(64), nullable=False, index=True)
    room_type_id = Column(
        String(36), ForeignKey(f"{qualified('room_types')}.id", ondelete="SET NULL"), nullable=True
    )
    guest_id = Column(String(36), nullable=True)
    status = Column(String(32), nullable=False)
    check_in = Column(Date, nullable=True)
    check_out = Column(Date, nullable=True)
    adults = Column(Integer, nullable=True)
    children = Column(Integer, nullable=True)
    total_amount = Column(Numeric(12, 2), nullable=True)
    channel = Column(String(64), nullable=True)
    guest_name = Column(String(255), nullable=True)
    raw_payload = Column(JSONType, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
