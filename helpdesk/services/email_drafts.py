"""
Ticket drafts from inbound emails

Pre-fills a ticket from a mail message: subject as title, sender header
plus body as description, type and priority guessed from keywords, and
the subscriber resolved from the sender.
"""

from typing import Optional

from helpdesk.models.enums import (
    Priority, TicketStatus, TicketType, TicketOrigin, TicketChannel,
    TYPE_KEYWORDS, URGENT_KEYWORDS,
)
from helpdesk.models.schemas import InboundEmail, TicketCreate, TicketDraft
from helpdesk.services.subscriber_resolver import SubscriberResolver, parse_sender


def detect_type(text: str) -> TicketType:
    content = text.lower()
    for ticket_type, keywords in TYPE_KEYWORDS:
        if any(keyword in content for keyword in keywords):
            return ticket_type
    return TicketType.TECHNICAL_SUPPORT


def detect_priority(text: str) -> Priority:
    content = text.lower()
    if any(keyword in content for keyword in URGENT_KEYWORDS):
        return Priority.HIGH
    return Priority.MEDIUM


def draft_from_email(
    email: InboundEmail,
    resolver: SubscriberResolver,
    created_by: Optional[str] = None
) -> TicketDraft:
    """Build an unsaved ticket for `email`"""
    body = email.body or email.snippet
    sender = parse_sender(email.sender)
    resolution = resolver.resolve(sender, body=body)

    header = f"Email received from: {email.sender}"
    if email.date:
        header += f"\nDate: {email.date}"

    classify = f"{email.subject} {email.snippet}"
    ticket = TicketCreate(
        title=email.subject,
        description=f"{header}\n\n{body}",
        priority=detect_priority(classify),
        status=TicketStatus.NEW,
        type=detect_type(classify),
        origin=TicketOrigin.SUBSCRIBER,
        channel=TicketChannel.EMAIL,
        subscriber_id=resolution.subscriber.key if resolution.subscriber else None,
        subscriber_identity=resolution.identity,
        created_by=created_by,
    )

    return TicketDraft(ticket=ticket, matched_by=resolution.matched_by, subscriber=resolution.subscriber)
