from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from sync_beds24.config import SCHEMA
from sync_beds24.models.base import Base, JSONType


class RoomType(Base):
    """
    ORM model for a room type of a property.

    Rows are created by the initial import from Beds24 room definitions, or as
    placeholders when the calendar references a room that was never imported.
    The Beds24 room id lives in external_id_mappings (entity_type "room_type").
    """

    __tablename__ = "room_types"
    __table_args__ = {"schema": SCHEMA}

    id = Column(String(36), primary_key=True)
    hotel_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=True)
    max_occupancy = Column(Integer, nullable=True)
    raw_payload = Column(JSONType, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
