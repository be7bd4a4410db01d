"""Asset models."""

from pydantic import Field
from typing import Optional, List
from .resource import WHDModel, CustomField, Location


class Asset(WHDModel):
    id: Optional[int] = None
    type: Optional[str] = None
    asset_number: Optional[str] = Field(None, alias="assetNumber")
    serial_number: Optional[str] = Field(None, alias="serialNumber")
    network_address: Optional[str] = Field(None, alias="networkAddress")
    network_name: Optional[str] = Field(None, alias="networkName")
    location: Optional[Location] = None
    custom_fields: Optional[List[CustomField]] = Field(None, alias="assetCustomFields")
