"""Shared WHD resource models: locations, custom fields and lookup types."""

from datetime import datetime
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any


class WHDModel(BaseModel):
    """Base model for WHD JSON records.

    Fields are declared with the WHD JSON names as aliases and can be
    populated either way. Unknown keys sent by the server are ignored.
    """

    class Config:
        populate_by_name = True
        extra = "ignore"

    def to_whd(self) -> Dict[str, Any]:
        """Serialize using WHD field names, omitting unset values."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CustomField(WHDModel):
    """Custom field value attached to a ticket, asset or location."""

    id: Optional[int] = Field(None, alias="definitionId")
    value: Optional[str] = Field(None, alias="restValue")


def drop_empty_custom_fields(custom_fields: Optional[List[CustomField]]) -> List[CustomField]:
    """WHD rejects custom fields without a value."""
    return [cf for cf in custom_fields or [] if cf.value]


class Location(WHDModel):
    id: Optional[int] = None
    type: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    name: Optional[str] = Field(None, alias="locationName")
    postal_code: Optional[str] = Field(None, alias="postalCode")
    state: Optional[str] = None
    country: Optional[str] = None
    custom_fields: Optional[List[CustomField]] = Field(None, alias="locationCustomFields")
    last_updated: Optional[datetime] = Field(None, alias="lastUpdated")


class LocationPayload(BaseModel):
    """WHD API payload for location creation and update."""

    fields: Dict[str, Any] = Field(..., description="Location JSON sent to WHD")

    @classmethod
    def from_location(
        cls,
        location: Location,
        current: Optional[Location] = None
    ) -> "LocationPayload":
        """
        Build the create/update body for a location.

        Args:
            location: Location to send
            current: Location as currently stored in WHD; its custom fields
                missing from ``location`` are kept

        Returns:
            Location payload
        """
        custom_fields = list(location.custom_fields or [])

        if current is not None:
            known_ids = {cf.id for cf in custom_fields}
            for cf in current.custom_fields or []:
                if cf.id not in known_ids:
                    custom_fields.append(cf)

        custom_fields = drop_empty_custom_fields(custom_fields)
        location = location.model_copy(update={"custom_fields": custom_fields or None})

        fields = location.to_whd()
        fields.pop("lastUpdated", None)
        if "locationCustomFields" in fields:
            fields["customFields"] = fields.pop("locationCustomFields")

        return cls(fields=fields)


class ProblemType(WHDModel):
    id: Optional[int] = None
    type: Optional[str] = None
    name: Optional[str] = Field(None, alias="detailDisplayName")


class PriorityType(WHDModel):
    id: Optional[int] = None
    type: Optional[str] = None


class StatusType(WHDModel):
    id: Optional[int] = None
    type: Optional[str] = None


class RequestType(WHDModel):
    """Request (problem) type as returned by the RequestTypes list."""

    id: int
    parent_id: Optional[int] = Field(None, alias="parentId")
    name: str = Field("", alias="problemTypeName")

    def __str__(self) -> str:
        return self.name
