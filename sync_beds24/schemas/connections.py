from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ConnectionCreatePayload(BaseModel):
    """
    Schema for linking a hotel to a Beds24 property with an invite code.

    Accepts camelCase (orgId) and snake_case (org_id) field names.
    """

    model_config = ConfigDict(populate_by_name=True)

    org_id: str = Field(..., alias="orgId", description="Owning organization ID")
    hotel_id: str = Field(..., alias="propertyId", description="Internal hotel/property ID")
    external_property_id: str = Field(
        ..., alias="externalPropertyId", description="Beds24 property ID"
    )
    invite_code: str = Field(
        ..., alias="inviteCode", min_length=1, description="One-time Beds24 invite code"
    )
    scopes: Optional[List[str]] = Field(None, description="Granted scopes (default: all)")
