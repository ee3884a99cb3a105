from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class SyncTriggerPayload(BaseModel):
    """Schema for triggering a bookings and/or calendar sync."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["bookings", "calendar", "both"] = Field("both", description="What to sync")
    hotel_id: Optional[str] = Field(
        None, alias="hotelId", description="Sync only this hotel (default: all eligible)"
    )
