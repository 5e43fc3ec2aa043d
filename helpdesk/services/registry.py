"""
Service Registry

Builds the long-lived services once at application start. Routes and the
scheduler receive them from here instead of reaching for module globals.
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

from helpdesk.services.airtable_client import AirtableClient, get_airtable_config
from helpdesk.services.errors import ConfigurationMissing
from helpdesk.services.subscriber_cache import SubscriberCache
from helpdesk.services.supabase_client import RelationalStore
from helpdesk.services.ticket_gateway import TicketMutationGateway
from helpdesk.sync.sync_subscribers import SubscriberMirror

logger = logging.getLogger(__name__)


@dataclass
class ServiceRegistry:
    subscriber_cache: SubscriberCache
    airtable: Optional[AirtableClient] = None
    store: Optional[RelationalStore] = None
    mirror: Optional[SubscriberMirror] = None
    gateway: Optional[TicketMutationGateway] = None


def build_subscriber_cache(
    source: str,
    airtable: Optional[AirtableClient],
    store: Optional[RelationalStore],
    mirror: Optional[SubscriberMirror]
) -> SubscriberCache:
    """
    `airtable`: read straight from Airtable (manual entry when unconfigured).
    `replica`: read the Supabase replica, syncing once when it is empty.
    """
    if source == "replica":
        if store is None:
            raise ConfigurationMissing("SUBSCRIBER_SOURCE=replica requires SUPABASE_URL and SUPABASE_SERVICE_KEY")
        on_empty = mirror.sync if mirror else None
        return SubscriberCache(loader=store.list_subscribers, on_empty=on_empty, source="replica")

    if source != "airtable":
        raise ValueError(f"Unknown SUBSCRIBER_SOURCE {source!r} (expected 'airtable' or 'replica')")

    loader = airtable.list_subscribers if airtable else None
    return SubscriberCache(loader=loader, source="airtable")


def build_services() -> ServiceRegistry:
    """Wire services from environment settings"""
    config = get_airtable_config()
    airtable = AirtableClient(config) if config else None
    if airtable is None:
        logger.warning("[Registry] Airtable configuration missing, subscribers fall back to manual entry")

    try:
        store = RelationalStore()
    except ValueError as e:
        logger.error(f"[Registry] Relational store unavailable: {e}")
        store = None

    mirror = SubscriberMirror(airtable, store) if airtable and store else None
    gateway = TicketMutationGateway(store, airtable) if store else None

    source = os.getenv("SUBSCRIBER_SOURCE", "airtable").strip().lower()
    cache = build_subscriber_cache(source, airtable, store, mirror)

    return ServiceRegistry(
        subscriber_cache=cache,
        airtable=airtable,
        store=store,
        mirror=mirror,
        gateway=gateway,
    )
