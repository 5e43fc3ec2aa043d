"""
Subscriber Sync Module

One-way mirror of Airtable subscribers into the relational `subscribers`
table: insert new, overwrite existing, delete vanished. Each run
recomputes its plan from scratch, so runs are idempotent and may be
triggered concurrently.
"""

import logging
from typing import Dict, Optional, Tuple

from helpdesk.services.airtable_client import AirtableClient, SUBSCRIBER_MAX_PAGES
from helpdesk.services.supabase_client import RelationalStore
from helpdesk.sync.sync_base import SyncStats, ReconciliationPlan, compute_plan, external_id_of

logger = logging.getLogger(__name__)


class SubscriberMirror:
    """Reconciles the relational replica with the Airtable source"""

    def __init__(
        self,
        airtable: AirtableClient,
        store: RelationalStore,
        max_pages: int = SUBSCRIBER_MAX_PAGES
    ):
        self.airtable = airtable
        self.store = store
        self.max_pages = max_pages

    async def plan(self) -> Tuple[ReconciliationPlan, int]:
        """
        Fetch both sides and diff them. Returns (plan, source count).

        Any failure here propagates: no writes happen against a partial source.
        """
        source = await self.airtable.list_subscribers(max_pages=self.max_pages)
        logger.info(f"[Mirror] {len(source)} subscribers fetched from Airtable")

        existing = await self.store.list_subscriber_keys()
        return compute_plan(source, (row.get("external_record_id") for row in existing)), len(source)

    async def sync(self) -> SyncStats:
        """Run one reconciliation pass and return its counts"""
        plan, total_source = await self.plan()
        stats = SyncStats(total_source=total_source)
        logger.info(f"[Mirror] Plan: {plan.summary()}")

        if plan.to_insert:
            await self.store.insert_subscribers([s.to_row() for s in plan.to_insert])
            stats.inserted = len(plan.to_insert)
            logger.info(f"[Mirror] {stats.inserted} subscribers inserted")

        for subscriber in plan.to_update:
            external_id = external_id_of(subscriber)
            try:
                await self.store.update_subscriber(external_id, subscriber.to_row())
                stats.updated += 1
            except Exception as e:
                logger.error(f"[Mirror] Update failed for {external_id}: {e}")
                stats.add_error(external_id, str(e))

        if plan.to_update:
            logger.info(f"[Mirror] {stats.updated}/{len(plan.to_update)} subscribers updated")

        if plan.to_delete:
            try:
                await self.store.delete_subscribers(plan.to_delete)
                stats.deleted = len(plan.to_delete)
                logger.info(f"[Mirror] {stats.deleted} obsolete subscribers deleted")
            except Exception as e:
                logger.error(f"[Mirror] Batch delete failed: {e}")

        logger.info(f"[Mirror] Sync complete: {stats.as_dict()}")
        return stats


async def sync_subscribers(mirror: Optional[SubscriberMirror]) -> Dict:
    """
    Run the mirror and shape the result for the trigger endpoint.

    Returns {success, message, stats} or {success: False, error}.
    """
    if mirror is None:
        return {"success": False, "error": "Airtable or Supabase configuration missing"}

    try:
        stats = await mirror.sync()
        return {
            "success": True,
            "message": "Subscriber sync completed",
            "stats": stats.as_dict(),
        }
    except Exception as e:
        logger.error(f"[Mirror] Sync failed: {e}")
        return {"success": False, "error": str(e)}
