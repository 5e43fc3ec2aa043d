"""
Scheduler Module

Background job scheduler for the subscriber mirror.
Uses APScheduler to run the sync on a configurable interval.
"""

import os
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from helpdesk.services.registry import ServiceRegistry
from helpdesk.sync import sync_subscribers

logger = logging.getLogger(__name__)

# Configuration from environment
SYNC_ENABLED = os.getenv("SYNC_ENABLED", "true").lower() == "true"
SUBSCRIBER_SYNC_INTERVAL_MINUTES = int(os.getenv("SUBSCRIBER_SYNC_INTERVAL_MINUTES", "60"))

# Create scheduler
scheduler = AsyncIOScheduler()


async def scheduled_subscriber_sync(services: ServiceRegistry):
    """Run subscriber mirror (every N minutes)"""
    if services.mirror is None:
        logger.info("[Scheduler] Mirror not configured, skipping subscriber sync")
        return

    logger.info("[Scheduler] Starting subscriber sync")
    result = await sync_subscribers(services.mirror)
    if result["success"]:
        logger.info(f"[Scheduler] Subscriber sync complete: {result['stats']}")
        if services.subscriber_cache.source == "replica":
            await services.subscriber_cache.reload()
    else:
        logger.error(f"[Scheduler] Subscriber sync failed: {result.get('error')}")


def start_scheduler(services: ServiceRegistry):
    """Start the background scheduler"""
    if not SYNC_ENABLED:
        logger.info("[Scheduler] Sync disabled via SYNC_ENABLED env var")
        return

    if services.mirror is None:
        logger.info("[Scheduler] Airtable or Supabase not configured, scheduler not started")
        return

    logger.info(f"[Scheduler] Subscriber sync every {SUBSCRIBER_SYNC_INTERVAL_MINUTES} minutes")

    scheduler.add_job(
        scheduled_subscriber_sync,
        IntervalTrigger(minutes=SUBSCRIBER_SYNC_INTERVAL_MINUTES),
        args=[services],
        id="subscriber_sync",
        name="Airtable Subscriber Mirror",
        replace_existing=True
    )

    scheduler.start()
    logger.info("[Scheduler] Scheduler started successfully")


def stop_scheduler():
    """Stop the scheduler"""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("[Scheduler] Scheduler stopped")
