"""
Ticket Mutation Gateway

Primary write to the relational store, then a best-effort mirrored write
to Airtable. Only the primary write can fail the operation; the mirror
result is logged and discarded.
"""

import logging
import uuid
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from helpdesk.models.schemas import Ticket, TicketCreate, TicketUpdate, CommentCreate, Subscriber
from helpdesk.services.airtable_client import AirtableClient
from helpdesk.services.errors import ValidationError, TicketNotFound, summarize
from helpdesk.services.supabase_client import RelationalStore

logger = logging.getLogger(__name__)

REQUIRED_TEXT_FIELDS = {
    "title": "Title is required",
    "description": "Description is required",
}


@dataclass
class MirrorResult:
    """Outcome of a mirrored write. Never raised, never unwrapped by callers."""
    ok: bool
    record: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    skipped: bool = False

    @property
    def record_id(self) -> Optional[str]:
        return self.record.get("id") if self.record else None


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def validate_create(ticket: TicketCreate) -> None:
    errors = {field: msg for field, msg in REQUIRED_TEXT_FIELDS.items() if _blank(getattr(ticket, field))}
    if _blank(ticket.subscriber_id) and _blank(ticket.subscriber_identity):
        errors["subscriber"] = "Subscriber is required"
    if errors:
        raise ValidationError(errors)


def validate_patch(data: Dict[str, Any]) -> None:
    errors = {
        field: msg for field, msg in REQUIRED_TEXT_FIELDS.items()
        if field in data and _blank(data[field])
    }
    if "subscriber_identity" in data and _blank(data["subscriber_identity"]) and _blank(data.get("subscriber_id")):
        errors["subscriber"] = "Subscriber is required"
    if errors:
        raise ValidationError(errors)


class TicketMutationGateway:
    """Creates and updates tickets across both stores"""

    def __init__(self, store: RelationalStore, airtable: Optional[AirtableClient] = None):
        self.store = store
        self.airtable = airtable

    # =========================================================================
    # Reads
    # =========================================================================

    async def list_tickets(self) -> List[Ticket]:
        rows = await self.store.list_tickets()
        subscribers = await self.store.get_subscribers_by_keys(row.get("subscriber_id") for row in rows)
        return [Ticket.from_row(row, subscribers.get(str(row.get("subscriber_id")))) for row in rows]

    async def get_ticket(self, ticket_id: str) -> Ticket:
        row = await self.store.get_ticket(ticket_id)
        if row is None:
            raise TicketNotFound(ticket_id)
        return await self._to_ticket(row)

    async def stats(self) -> Dict[str, Any]:
        """Dashboard counters"""
        tickets = await self.list_tickets()
        return {
            "total": len(tickets),
            "by_status": dict(Counter(t.status.value for t in tickets)),
            "by_priority": dict(Counter(t.priority.value for t in tickets)),
            "by_type": dict(Counter(t.type.value for t in tickets)),
        }

    # =========================================================================
    # Writes
    # =========================================================================

    async def create(self, ticket: TicketCreate) -> Ticket:
        validate_create(ticket)
        subscriber = await self._subscriber_for(ticket.subscriber_id)

        row = ticket.model_dump(mode="json")
        if subscriber:
            # Snapshot kept for rows whose subscriber later leaves the replica
            row["subscriber_identity"] = subscriber.display_identity
        row["comments"] = []
        row["attachments"] = []

        created = await self.store.insert_ticket(row)
        logger.info(f"[Gateway] Ticket {created['id']} created")

        result = await self._mirror_create(created, subscriber)
        self._log_mirror("create", created["id"], result)
        if result.ok and result.record_id:
            created = await self._record_external_id(created, result.record_id)

        return Ticket.from_row(created, subscriber)

    async def update(self, ticket_id: str, patch: TicketUpdate) -> Ticket:
        data = patch.model_dump(mode="json", exclude_unset=True)
        validate_patch(data)

        if not data:
            return await self.get_ticket(ticket_id)

        subscriber = None
        if data.get("subscriber_id"):
            subscriber = await self._subscriber_for(data["subscriber_id"])
            data["subscriber_identity"] = subscriber.display_identity

        updated = await self.store.update_ticket(ticket_id, data)
        if updated is None:
            raise TicketNotFound(ticket_id)
        logger.info(f"[Gateway] Ticket {ticket_id} updated: {sorted(data)}")

        if subscriber is None:
            subscriber = await self._joined_subscriber(updated)
        if updated.get("external_record_id"):
            result = await self._mirror_update(updated, subscriber)
            self._log_mirror("update", ticket_id, result)
        else:
            result = await self._mirror_create(updated, subscriber)
            self._log_mirror("create", ticket_id, result)
            if result.ok and result.record_id:
                updated = await self._record_external_id(updated, result.record_id)

        return Ticket.from_row(updated, subscriber)

    async def add_comment(self, ticket_id: str, comment: CommentCreate) -> Ticket:
        """Append a comment. Comments are not mirrored."""
        if _blank(comment.content):
            raise ValidationError({"content": "Comment is empty"})

        row = await self.store.get_ticket(ticket_id)
        if row is None:
            raise TicketNotFound(ticket_id)

        comments = list(row.get("comments") or [])
        comments.append({
            "id": str(uuid.uuid4()),
            "content": comment.content.strip(),
            "author_id": comment.author_id,
            "created_at": datetime.now(timezone.utc).isoformat(),
        })

        updated = await self.store.update_ticket(ticket_id, {"comments": comments})
        if updated is None:
            raise TicketNotFound(ticket_id)
        return Ticket.from_row(updated, await self._joined_subscriber(updated))

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _to_ticket(self, row: Dict[str, Any]) -> Ticket:
        subscriber = await self._subscriber_for(row.get("subscriber_id"), required=False)
        return Ticket.from_row(row, subscriber)

    async def _joined_subscriber(self, row: Dict[str, Any]) -> Optional[Subscriber]:
        """Subscriber of a row that is already written. A failed lookup falls back to the stored identity."""
        try:
            return await self._subscriber_for(row.get("subscriber_id"), required=False)
        except Exception as e:
            logger.warning(f"[Gateway] Subscriber lookup failed for ticket {row.get('id')}: {e}")
            return None

    async def _subscriber_for(self, subscriber_id: Optional[str], required: bool = True) -> Optional[Subscriber]:
        if _blank(subscriber_id):
            return None
        subscriber = await self.store.get_subscriber(subscriber_id)
        if subscriber is None and required:
            raise ValidationError({"subscriber_id": f"Unknown subscriber {subscriber_id}"})
        return subscriber

    def _mirror_payload(self, row: Dict[str, Any], subscriber: Optional[Subscriber]) -> Dict[str, Any]:
        return {
            "title": row.get("title"),
            "description": row.get("description"),
            "status": row.get("status"),
            "priority": row.get("priority"),
            "client_name": subscriber.display_identity if subscriber else row.get("subscriber_identity"),
            "client_email": subscriber.email if subscriber else None,
        }

    async def _mirror_create(self, row: Dict[str, Any], subscriber: Optional[Subscriber]) -> MirrorResult:
        if self.airtable is None:
            return MirrorResult(ok=False, skipped=True)
        try:
            record = await self.airtable.create_ticket_record(self._mirror_payload(row, subscriber))
            return MirrorResult(ok=True, record=record)
        except Exception as e:
            return MirrorResult(ok=False, error=summarize(e))

    async def _mirror_update(self, row: Dict[str, Any], subscriber: Optional[Subscriber]) -> MirrorResult:
        if self.airtable is None:
            return MirrorResult(ok=False, skipped=True)
        try:
            record = await self.airtable.update_ticket_record(
                row["external_record_id"], self._mirror_payload(row, subscriber)
            )
            return MirrorResult(ok=True, record=record)
        except Exception as e:
            return MirrorResult(ok=False, error=summarize(e))

    async def _record_external_id(self, row: Dict[str, Any], record_id: str) -> Dict[str, Any]:
        """Best-effort: remember the Airtable record id on the ticket row"""
        try:
            updated = await self.store.update_ticket(row["id"], {"external_record_id": record_id})
            return updated or {**row, "external_record_id": record_id}
        except Exception as e:
            logger.warning(f"[Gateway] Could not store Airtable id for ticket {row['id']}: {e}")
            return row

    def _log_mirror(self, action: str, ticket_id: str, result: MirrorResult) -> None:
        if result.skipped:
            logger.info(f"[Gateway] Airtable not configured, ticket {ticket_id} {action} kept in Supabase only")
        elif result.ok:
            logger.info(f"[Gateway] Ticket {ticket_id} mirrored to Airtable ({action}, {result.record_id})")
        else:
            logger.warning(f"[Gateway] Airtable {action} failed for ticket {ticket_id}: {result.error}")
