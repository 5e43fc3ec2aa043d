"""
Ticket Endpoints

Create and edit tickets through the mutation gateway; draft tickets from
inbound emails.
"""

from fastapi import APIRouter, Depends, HTTPException
import logging

from helpdesk.models.schemas import TicketCreate, TicketUpdate, CommentCreate, InboundEmail
from helpdesk.routers.deps import get_gateway, get_subscriber_cache
from helpdesk.services.email_drafts import draft_from_email
from helpdesk.services.errors import ValidationError, TicketNotFound, StoreError, summarize
from helpdesk.services.subscriber_cache import SubscriberCache
from helpdesk.services.ticket_gateway import TicketMutationGateway

logger = logging.getLogger(__name__)

router = APIRouter()


def _raise_http(e: Exception):
    if isinstance(e, ValidationError):
        raise HTTPException(status_code=400, detail=e.errors)
    if isinstance(e, TicketNotFound):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, StoreError):
        raise HTTPException(status_code=502, detail=summarize(e))
    logger.error(f"Ticket operation failed: {e}")
    raise HTTPException(status_code=500, detail=f"Ticket operation failed: {summarize(e)}")


@router.get("/")
async def list_tickets(gateway: TicketMutationGateway = Depends(get_gateway)):
    """All tickets, newest first, with subscriber identity joined at read time"""
    try:
        return await gateway.list_tickets()
    except Exception as e:
        _raise_http(e)


@router.get("/stats")
async def ticket_stats(gateway: TicketMutationGateway = Depends(get_gateway)):
    """Dashboard counters by status, priority and type"""
    try:
        return await gateway.stats()
    except Exception as e:
        _raise_http(e)


@router.post("/")
async def create_ticket(ticket: TicketCreate, gateway: TicketMutationGateway = Depends(get_gateway)):
    """
    Create a ticket

    Saved in Supabase; mirrored to Airtable on a best-effort basis.
    An Airtable failure never fails this request.
    """
    try:
        return await gateway.create(ticket)
    except Exception as e:
        _raise_http(e)


@router.post("/from-email")
async def draft_ticket_from_email(
    email: InboundEmail,
    cache: SubscriberCache = Depends(get_subscriber_cache)
):
    """Pre-fill a ticket from an inbound email (not saved)"""
    await cache.ensure_loaded()
    return draft_from_email(email, cache.resolver())


@router.get("/{ticket_id}")
async def get_ticket(ticket_id: str, gateway: TicketMutationGateway = Depends(get_gateway)):
    try:
        return await gateway.get_ticket(ticket_id)
    except Exception as e:
        _raise_http(e)


@router.patch("/{ticket_id}")
async def update_ticket(
    ticket_id: str,
    patch: TicketUpdate,
    gateway: TicketMutationGateway = Depends(get_gateway)
):
    """Update status, priority, assignment or content of a ticket"""
    try:
        return await gateway.update(ticket_id, patch)
    except Exception as e:
        _raise_http(e)


@router.post("/{ticket_id}/comments")
async def add_comment(
    ticket_id: str,
    comment: CommentCreate,
    gateway: TicketMutationGateway = Depends(get_gateway)
):
    try:
        return await gateway.add_comment(ticket_id, comment)
    except Exception as e:
        _raise_http(e)
