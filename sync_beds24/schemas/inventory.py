from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class InventoryUpdate(BaseModel):
    """Availability and/or price for one room type over an inclusive date range."""

    model_config = ConfigDict(populate_by_name=True)

    room_type_id: str = Field(..., alias="roomTypeId", description="Internal room type ID")
    date_from: date = Field(..., alias="from")
    date_to: date = Field(..., alias="to")
    num_avail: Optional[int] = Field(None, alias="numAvail", ge=0)
    price: Optional[Decimal] = Field(None, ge=0)

    @model_validator(mode="after")
    def check_range(self) -> "InventoryUpdate":
        if self.date_to < self.date_from:
            raise ValueError("'to' must not be before 'from'")
        if self.num_avail is None and self.price is None:
            raise ValueError("numAvail or price is required")
        return self


class InventoryPushPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    hotel_id: str = Field(..., alias="hotelId")
    updates: List[InventoryUpdate] = Field(..., min_length=1)
