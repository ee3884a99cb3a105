from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from sync_beds24.config import SCHEMA
from sync_beds24.models.base import Base, qualified


class CalendarDay(Base):
    """Availability and price of one room type on one day."""

    __tablename__ = "calendar_days"
    __table_args__ = (
        UniqueConstraint("room_type_id", "day", name="uq_calendar_days_room_day"),
        {"schema": SCHEMA},
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    hotel_id = Column(String(64), nullable=False, index=True)
    room_type_id = Column(
        String(36), ForeignKey(f"{qualified('room_types')}.id", ondelete="CASCADE"), nullable=False
    )
    day = Column(Date, nullable=False)
    available = Column(Integer, nullable=True)
    price = Column(Numeric(12, 2), nullable=True)
    min_stay = Column(Integer, nullable=True)
    max_stay = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
