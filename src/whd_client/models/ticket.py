"""Ticket, note and attachment models for the Web Help Desk API."""

from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any
from .asset import Asset
from .resource import (
    WHDModel,
    CustomField,
    Location,
    PriorityType,
    ProblemType,
    StatusType,
    drop_empty_custom_fields,
)


class Attachment(WHDModel):
    id: Optional[int] = None
    file_name: Optional[str] = Field(None, alias="fileName")
    size_string: Optional[str] = Field(None, alias="sizeString")
    upload_date_utc: Optional[datetime] = Field(None, alias="uploadDateUtc")


class JobTicketRef(WHDModel):
    """Reference from a note to its ticket."""

    id: Optional[int] = None
    type: Optional[str] = None


class Note(WHDModel):
    """Ticket note.

    ``mobile_note_text`` is what WHD returns when reading notes,
    ``note_text`` is what it expects when creating one.
    """

    id: Optional[int] = None
    date: Optional[datetime] = None
    mobile_note_text: Optional[str] = Field(None, alias="mobileNoteText")
    pretty_updated_string: Optional[str] = Field(None, alias="prettyUpdatedString")
    note_text: Optional[str] = Field(None, alias="noteText")
    attachments: Optional[List[Attachment]] = None
    is_hidden: bool = Field(False, alias="isHidden")
    is_tech_note: bool = Field(False, alias="isTechNote")
    job_ticket: Optional[JobTicketRef] = Field(None, alias="jobticket")
    reason: Optional[str] = None

    @field_validator("is_hidden", "is_tech_note", mode="before")
    @classmethod
    def _null_is_false(cls, value):
        return False if value is None else value

    @classmethod
    def for_ticket(cls, ticket_id: int, text: str, hidden: bool = False) -> "Note":
        """Create a new note body for a ticket."""
        return cls(
            job_ticket=JobTicketRef(id=ticket_id, type="JobTicket"),
            note_text=text,
            is_hidden=hidden
        )


class ClientTech(WHDModel):
    id: Optional[int] = None
    type: Optional[str] = None
    email: Optional[str] = None
    display_name: Optional[str] = Field(None, alias="displayName")


class TechGroupLevel(WHDModel):
    id: Optional[int] = None
    type: Optional[str] = None
    level: Optional[int] = None
    level_name: Optional[str] = Field(None, alias="levelName")
    short_level_name: Optional[str] = Field(None, alias="shortLevelName")


class OrionAlert(WHDModel):
    """SolarWinds Orion alert linked to a ticket."""

    id: Optional[str] = None
    data: Optional[Dict[str, str]] = None


class Ticket(WHDModel):
    id: Optional[int] = None
    detail: Optional[str] = None
    subject: Optional[str] = None
    last_updated: Optional[datetime] = Field(None, alias="lastUpdated")
    report_date_utc: Optional[str] = Field(None, alias="reportDateUtc")
    location_id: Optional[int] = Field(None, alias="locationId")
    location: Optional[Location] = None
    status_type_id: Optional[int] = Field(None, alias="statusTypeId")
    status_type: Optional[StatusType] = Field(None, alias="statustype")
    priority_type_id: Optional[int] = Field(None, alias="priorityTypeId")
    priority_type: Optional[PriorityType] = Field(None, alias="prioritytype")
    problem_type: Optional[ProblemType] = Field(None, alias="problemtype")
    custom_fields: Optional[List[CustomField]] = Field(None, alias="ticketCustomFields")
    assets: Optional[List[Asset]] = None
    notes: Optional[List[Note]] = None
    attachments: Optional[List[Attachment]] = None
    client_tech: Optional[ClientTech] = Field(None, alias="clientTech")
    tech_group_level: Optional[TechGroupLevel] = Field(None, alias="techGroupLevel")
    orion_alert: Optional[OrionAlert] = Field(None, alias="orionAlert")
    email_tech: Optional[bool] = Field(None, alias="emailTech")
    email_client: bool = Field(False, alias="emailClient")

    @field_validator("email_client", mode="before")
    @classmethod
    def _null_is_false(cls, value):
        return False if value is None else value


class TicketPayload(BaseModel):
    """WHD API payload for ticket creation and update."""

    fields: Dict[str, Any] = Field(..., description="Ticket JSON sent to WHD")

    @classmethod
    def from_ticket(cls, ticket: Ticket) -> "TicketPayload":
        """Create the WHD create/update body from a ticket."""
        update: Dict[str, Any] = {
            # reportDateUtc cannot be set on create or update
            "report_date_utc": None,
            "custom_fields": drop_empty_custom_fields(ticket.custom_fields) or None,
        }

        if ticket.location_id:
            update["location"] = Location(id=ticket.location_id, type="Location")
        if ticket.priority_type_id:
            update["priority_type"] = PriorityType(id=ticket.priority_type_id, type="PriorityType")
        if ticket.status_type_id:
            update["status_type"] = StatusType(id=ticket.status_type_id, type="StatusType")
        if not ticket.email_tech:
            update["email_tech"] = None

        ticket = ticket.model_copy(update=update)
        fields = ticket.to_whd()

        fields.pop("lastUpdated", None)
        if "ticketCustomFields" in fields:
            fields["customFields"] = fields.pop("ticketCustomFields")

        # Zero-valued references are rejected by WHD
        if not (ticket.problem_type and ticket.problem_type.id):
            fields.pop("problemtype", None)
        if not (ticket.location and ticket.location.id):
            fields.pop("location", None)
        if not ticket.priority_type_id:
            fields.pop("prioritytype", None)
        if not ticket.status_type_id:
            fields.pop("statustype", None)

        return cls(fields=fields)
