from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class TokenActionPayload(BaseModel):
    """
    Schema for the scheduled-job token endpoint.

    getAccessToken and keepAlive require hotelId; keepAliveAll ignores it.
    """

    model_config = ConfigDict(populate_by_name=True)

    action: Literal["getAccessToken", "keepAlive", "keepAliveAll"]
    hotel_id: Optional[str] = Field(None, alias="hotelId")
    for_write: bool = Field(False, alias="forWrite")
