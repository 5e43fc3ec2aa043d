"""
Subscriber Endpoints

Read-through access to the shared subscriber cache.
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from helpdesk.routers.deps import get_subscriber_cache
from helpdesk.services.subscriber_cache import SubscriberCache
from helpdesk.services.subscriber_resolver import parse_sender

router = APIRouter()


def _state(entry, subscribers=None):
    return {
        "subscribers": [s.model_dump() for s in (subscribers if subscribers is not None else entry.data)],
        "loading": entry.loading,
        "error": entry.error,
        "initialized": entry.initialized,
        "manual_entry": entry.manual_entry,
    }


@router.get("/")
async def list_subscribers(
    q: str = Query(default="", description="Filter by name, contract, email or company"),
    cache: SubscriberCache = Depends(get_subscriber_cache)
):
    """
    Subscribers for the ticket form picker.

    The first call loads the cache; later calls are served from memory.
    `manual_entry` is true when Airtable is not configured.
    """
    entry = await cache.ensure_loaded()
    subscribers = cache.search(q) if q else None
    return _state(entry, subscribers)


@router.post("/reload")
async def reload_subscribers(cache: SubscriberCache = Depends(get_subscriber_cache)):
    """Invalidate the cache and fetch again"""
    entry = await cache.reload()
    return _state(entry)


@router.get("/resolve")
async def resolve_subscriber(
    hint: str = Query(..., description="Free text or email sender"),
    cache: SubscriberCache = Depends(get_subscriber_cache)
):
    """Best matching subscriber: email, then name, else a synthesized identity"""
    if not hint.strip():
        raise HTTPException(status_code=400, detail="hint is required")

    await cache.ensure_loaded()
    sender = parse_sender(hint) if "@" in hint else hint
    resolution = cache.resolve(sender)

    return {
        "matched_by": resolution.matched_by,
        "subscriber": resolution.subscriber.model_dump() if resolution.subscriber else None,
        "identity": resolution.identity,
    }


@router.get("/{subscriber_id}")
async def get_subscriber(subscriber_id: str, cache: SubscriberCache = Depends(get_subscriber_cache)):
    await cache.ensure_loaded()
    subscriber = cache.get(subscriber_id)
    if subscriber is None:
        raise HTTPException(status_code=404, detail="Subscriber not found")
    return subscriber.model_dump()
