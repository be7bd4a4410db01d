"""Data models for the WHD client."""

from .auth import AuthType, User, wrap_auth
from .config import Settings
from .asset import Asset
from .resource import CustomField, Location, LocationPayload, RequestType
from .ticket import Attachment, Note, Ticket, TicketPayload

__all__ = [
    "AuthType", "User", "wrap_auth", "Settings", "Asset", "CustomField",
    "Location", "LocationPayload", "RequestType", "Attachment", "Note",
    "Ticket", "TicketPayload",
]
