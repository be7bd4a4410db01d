"""Client library for the SolarWinds Web Help Desk REST API."""

from .integrations import WHDClient, WHDError, WHDAPIError, WHDRequestError, WHDResponseError
from .models import (
    Asset,
    Attachment,
    AuthType,
    CustomField,
    Location,
    Note,
    RequestType,
    Settings,
    Ticket,
    User,
)

__version__ = "1.0.0"

__all__ = [
    "WHDClient", "WHDError", "WHDAPIError", "WHDRequestError", "WHDResponseError",
    "Asset", "Attachment", "AuthType", "CustomField", "Location", "Note",
    "RequestType", "Settings", "Ticket", "User",
]
