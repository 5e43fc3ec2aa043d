"""
Pydantic Models for Subscribers, Tickets and Sync Results
"""

from pydantic import BaseModel, Field, computed_field, field_validator
from typing import Optional, List, Dict, Any
from dataclasses import dataclass, field

from helpdesk.models.enums import Priority, TicketStatus, TicketType, TicketOrigin, TicketChannel


# Subscriber Models
class Subscriber(BaseModel):
    """Subscriber identity record (read-only for agents)"""
    id: str
    external_record_id: Optional[str] = None
    last_name: str
    first_name: str
    contract_reference: str
    company_name: Optional[str] = None
    installer_name: Optional[str] = None
    crm_link: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("contract_reference", mode="before")
    @classmethod
    def _contract_not_blank(cls, value, info):
        if value is None or not str(value).strip():
            data = info.data
            return data.get("external_record_id") or data.get("id") or ""
        return value

    @property
    def key(self) -> str:
        """Stable id shared by both stores; tickets reference subscribers by it"""
        return self.external_record_id or self.id

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @computed_field
    @property
    def display_identity(self) -> str:
        return f"{self.display_name} - {self.contract_reference}"

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Subscriber":
        """Build from a `subscribers` table row"""
        return cls(
            id=str(row["id"]),
            external_record_id=row.get("external_record_id"),
            last_name=row.get("last_name") or "",
            first_name=row.get("first_name") or "",
            contract_reference=row.get("contract_reference") or row.get("external_record_id") or str(row["id"]),
            company_name=row.get("company_name"),
            installer_name=row.get("installer_name"),
            crm_link=row.get("crm_link"),
            email=row.get("email"),
            phone=row.get("phone"),
        )

    def to_row(self) -> Dict[str, Any]:
        """Mirrored columns of the `subscribers` table. Empty optionals become NULL."""
        return {
            "external_record_id": self.external_record_id or self.id,
            "last_name": self.last_name,
            "first_name": self.first_name,
            "contract_reference": self.contract_reference,
            "company_name": self.company_name or None,
            "installer_name": self.installer_name or None,
            "crm_link": self.crm_link or None,
            "email": self.email or None,
            "phone": self.phone or None,
        }


class EmailSender(BaseModel):
    """Parsed `From` header"""
    name: str = ""
    address: str = ""

    def __str__(self) -> str:
        if self.name and self.address:
            return f"{self.name} <{self.address}>"
        return self.name or self.address


# Ticket Models
def _parse_enum(enum_cls, value):
    if value is None:
        return None
    return enum_cls.parse(value)


class TicketComment(BaseModel):
    """Comment attached to a ticket"""
    id: str
    content: str
    author_id: Optional[str] = None
    created_at: str


class CommentCreate(BaseModel):
    """Request to add a comment"""
    content: str = Field(..., description="Comment text")
    author_id: Optional[str] = Field(None, description="Agent id")


class TicketFields(BaseModel):
    """Coercion of legacy vocabularies shared by ticket models"""

    @field_validator("priority", mode="before", check_fields=False)
    @classmethod
    def _priority(cls, v):
        return _parse_enum(Priority, v)

    @field_validator("status", mode="before", check_fields=False)
    @classmethod
    def _status(cls, v):
        return _parse_enum(TicketStatus, v)

    @field_validator("type", mode="before", check_fields=False)
    @classmethod
    def _type(cls, v):
        return _parse_enum(TicketType, v)

    @field_validator("origin", mode="before", check_fields=False)
    @classmethod
    def _origin(cls, v):
        return _parse_enum(TicketOrigin, v)

    @field_validator("channel", mode="before", check_fields=False)
    @classmethod
    def _channel(cls, v):
        return _parse_enum(TicketChannel, v)


class TicketCreate(TicketFields):
    """Request to create a ticket"""
    title: str = ""
    description: str = ""
    priority: Priority = Priority.MEDIUM
    status: TicketStatus = TicketStatus.NEW
    type: TicketType = TicketType.TECHNICAL_SUPPORT
    origin: TicketOrigin = TicketOrigin.COMPANY
    channel: TicketChannel = TicketChannel.CONTACT_FORM
    assigned_to: Optional[str] = None
    subscriber_id: Optional[str] = Field(None, description="Subscriber key (external record id)")
    subscriber_identity: Optional[str] = Field(None, description="Free-text identity for manual entry")
    installer_id: Optional[str] = None
    created_by: Optional[str] = None


class TicketUpdate(TicketFields):
    """Partial ticket update. Only fields that are set are written."""
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[Priority] = None
    status: Optional[TicketStatus] = None
    type: Optional[TicketType] = None
    origin: Optional[TicketOrigin] = None
    channel: Optional[TicketChannel] = None
    assigned_to: Optional[str] = None
    subscriber_id: Optional[str] = None
    subscriber_identity: Optional[str] = None
    installer_id: Optional[str] = None


class Ticket(TicketFields):
    """Support ticket as read back from the relational store"""
    id: str
    title: str
    description: str
    priority: Priority
    status: TicketStatus
    type: TicketType
    origin: TicketOrigin
    channel: TicketChannel
    assigned_to: Optional[str] = None
    subscriber_id: Optional[str] = None
    subscriber_identity: str
    installer_id: Optional[str] = None
    external_record_id: Optional[str] = None
    comments: List[TicketComment] = Field(default_factory=list)
    attachments: List[Dict[str, Any]] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    created_by: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any], subscriber: Optional[Subscriber] = None) -> "Ticket":
        """
        Build from a `tickets` row.

        The display identity is computed from the joined subscriber; the
        stored free text is only used for manual-entry tickets.
        """
        identity = subscriber.display_identity if subscriber else (row.get("subscriber_identity") or "")
        return cls(
            id=str(row["id"]),
            title=row["title"],
            description=row["description"],
            priority=row.get("priority") or Priority.MEDIUM,
            status=row.get("status") or TicketStatus.NEW,
            type=row.get("type") or TicketType.TECHNICAL_SUPPORT,
            origin=row.get("origin") or TicketOrigin.COMPANY,
            channel=row.get("channel") or TicketChannel.CONTACT_FORM,
            assigned_to=row.get("assigned_to"),
            subscriber_id=row.get("subscriber_id"),
            subscriber_identity=identity,
            installer_id=row.get("installer_id"),
            external_record_id=row.get("external_record_id"),
            comments=row.get("comments") or [],
            attachments=row.get("attachments") or [],
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
            created_by=row.get("created_by"),
        )


# Email Models
class InboundEmail(BaseModel):
    """Message fetched from the mail provider"""
    id: str
    subject: str = "(no subject)"
    sender: str = "Unknown sender"
    date: Optional[str] = None
    snippet: str = ""
    body: Optional[str] = None
    has_attachments: bool = False
    is_read: bool = True


class TicketDraft(BaseModel):
    """Ticket pre-filled from an inbound email, not yet saved"""
    ticket: TicketCreate
    matched_by: str = Field(..., description="email, name or none")
    subscriber: Optional[Subscriber] = None


# Sync Models
class SyncStatsOut(BaseModel):
    total_source: int
    inserted: int
    updated: int
    deleted: int
    failed: int = 0


class SyncResult(BaseModel):
    success: bool
    message: Optional[str] = None
    stats: Optional[SyncStatsOut] = None
    error: Optional[str] = None


@dataclass
class CacheEntry:
    """Snapshot of the shared subscriber cache"""
    data: List[Subscriber] = field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None
    initialized: bool = False
    manual_entry: bool = False
