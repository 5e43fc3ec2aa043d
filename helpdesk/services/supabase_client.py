"""
Supabase Client

Relational store access for the `subscribers` replica and the `tickets`
table. Uses the service role key so the mirror job bypasses RLS.
"""

import os
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, Iterable

from supabase import create_client, Client

from helpdesk.models.schemas import Subscriber

logger = logging.getLogger(__name__)

SUBSCRIBERS_TABLE = "subscribers"
TICKETS_TABLE = "tickets"
READ_PAGE_SIZE = 1000  # PostgREST default max rows per response


class RelationalStore:
    """Client for relational store operations"""

    def __init__(self, client: Optional[Client] = None):
        if client is None:
            supabase_url = os.getenv("SUPABASE_URL")
            supabase_key = os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_KEY")

            if not supabase_url or not supabase_key:
                raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")

            client = create_client(supabase_url, supabase_key)

        self.supabase: Client = client

    def _select_all(
        self,
        table: str,
        columns: str,
        order: Optional[str] = None,
        desc: bool = False
    ) -> List[Dict]:
        """Read a whole table page by page"""
        rows: List[Dict] = []
        start = 0
        while True:
            query = self.supabase.table(table).select(columns)
            if order:
                query = query.order(order, desc=desc)
            result = query.range(start, start + READ_PAGE_SIZE - 1).execute()
            page = result.data or []
            rows.extend(page)
            if len(page) < READ_PAGE_SIZE:
                return rows
            start += READ_PAGE_SIZE

    # =========================================================================
    # Subscriber Operations
    # =========================================================================

    async def list_subscribers(self) -> List[Subscriber]:
        """All replicated subscribers, ordered by last name"""
        rows = self._select_all(SUBSCRIBERS_TABLE, "*", order="last_name")
        return [Subscriber.from_row(row) for row in rows]

    async def get_subscriber(self, key: str) -> Optional[Subscriber]:
        """Lookup by external record id (the key tickets reference)"""
        result = self.supabase.table(SUBSCRIBERS_TABLE) \
            .select("*") \
            .eq("external_record_id", key) \
            .limit(1) \
            .execute()

        if result.data:
            return Subscriber.from_row(result.data[0])
        return None

    async def get_subscribers_by_keys(self, keys: Iterable[str]) -> Dict[str, Subscriber]:
        wanted = sorted({k for k in keys if k})
        if not wanted:
            return {}

        result = self.supabase.table(SUBSCRIBERS_TABLE) \
            .select("*") \
            .in_("external_record_id", wanted) \
            .execute()

        subscribers = [Subscriber.from_row(row) for row in result.data or []]
        return {s.key: s for s in subscribers}

    async def list_subscriber_keys(self) -> List[Dict]:
        """(external_record_id, contract_reference) projection of the replica"""
        return self._select_all(SUBSCRIBERS_TABLE, "external_record_id, contract_reference")

    async def insert_subscribers(self, rows: List[Dict]) -> None:
        """Single batch insert"""
        if not rows:
            return
        self.supabase.table(SUBSCRIBERS_TABLE) \
            .insert(rows) \
            .execute()

    async def update_subscriber(self, external_id: str, row: Dict) -> None:
        """Overwrite the mirrored columns of one subscriber"""
        data = {k: v for k, v in row.items() if k != "external_record_id"}

        self.supabase.table(SUBSCRIBERS_TABLE) \
            .update(data) \
            .eq("external_record_id", external_id) \
            .execute()

    async def delete_subscribers(self, external_ids: List[str]) -> None:
        """Single batch delete keyed by external id"""
        if not external_ids:
            return
        self.supabase.table(SUBSCRIBERS_TABLE) \
            .delete() \
            .in_("external_record_id", external_ids) \
            .execute()

    # =========================================================================
    # Ticket Operations
    # =========================================================================

    async def insert_ticket(self, data: Dict[str, Any]) -> Dict:
        now = datetime.now(timezone.utc).isoformat()
        row = {**data, "created_at": now, "updated_at": now}

        result = self.supabase.table(TICKETS_TABLE) \
            .insert(row) \
            .execute()

        return result.data[0]

    async def update_ticket(self, ticket_id: str, data: Dict[str, Any]) -> Optional[Dict]:
        """Returns the updated row, or None when the ticket does not exist"""
        row = {**data, "updated_at": datetime.now(timezone.utc).isoformat()}

        result = self.supabase.table(TICKETS_TABLE) \
            .update(row) \
            .eq("id", ticket_id) \
            .execute()

        if result.data:
            return result.data[0]
        return None

    async def get_ticket(self, ticket_id: str) -> Optional[Dict]:
        result = self.supabase.table(TICKETS_TABLE) \
            .select("*") \
            .eq("id", ticket_id) \
            .limit(1) \
            .execute()

        if result.data:
            return result.data[0]
        return None

    async def list_tickets(self) -> List[Dict]:
        """All tickets, newest first"""
        return self._select_all(TICKETS_TABLE, "*", order="created_at", desc=True)
