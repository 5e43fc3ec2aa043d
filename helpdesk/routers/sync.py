"""
Sync Router

Endpoints for triggering the Airtable -> Supabase subscriber mirror.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
import os
import logging

from helpdesk.models.schemas import SyncResult
from helpdesk.routers.deps import get_services, require_sync_token
from helpdesk.services.registry import ServiceRegistry
from helpdesk.sync import sync_subscribers

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/status")
async def sync_status(services: ServiceRegistry = Depends(get_services)):
    """
    Check sync module status and configuration.
    """
    return {
        "status": "ok",
        "airtable_configured": services.airtable is not None,
        "supabase_configured": services.store is not None,
        "mirror_available": services.mirror is not None,
        "subscriber_source": services.subscriber_cache.source,
        "trigger_token_configured": bool(os.getenv("SYNC_TRIGGER_TOKEN")),
        "scheduler": {
            "enabled": os.getenv("SYNC_ENABLED", "true").lower() == "true",
            "interval_minutes": int(os.getenv("SUBSCRIBER_SYNC_INTERVAL_MINUTES", "60")),
        }
    }


@router.post(
    "/subscribers",
    response_model=SyncResult,
    response_model_exclude_none=True,
    dependencies=[Depends(require_sync_token)]
)
async def trigger_subscriber_sync(services: ServiceRegistry = Depends(get_services)):
    """
    Mirror Airtable subscribers into Supabase.

    Inserts new records, overwrites existing ones and deletes records
    that vanished from Airtable. Returns per-run counts.
    """
    logger.info("Starting subscriber sync (manual trigger)")
    result = await sync_subscribers(services.mirror)

    if not result["success"]:
        return JSONResponse(status_code=500, content=result)

    # A replica-backed cache is stale after a sync
    if services.subscriber_cache.source == "replica":
        await services.subscriber_cache.reload()

    return result
