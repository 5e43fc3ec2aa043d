"""
Subscriber Cache

Process-wide read-through cache of subscribers, built once at application
start and shared by every consumer. At most one fetch is in flight at any
time: concurrent callers await the same memoized task.
"""

import asyncio
import logging
from typing import Optional, List, Callable, Awaitable, Any, Union

from helpdesk.models.schemas import Subscriber, EmailSender, CacheEntry
from helpdesk.services.errors import summarize
from helpdesk.services.subscriber_resolver import SubscriberResolver, Resolution

logger = logging.getLogger(__name__)

Loader = Callable[[], Awaitable[List[Subscriber]]]


class SubscriberCache:
    """
    Shared subscriber state: data, loading, error, initialized.

    Without a loader (Airtable not configured) the cache settles into
    manual-entry mode: initialized, empty, and no error.
    """

    def __init__(
        self,
        loader: Optional[Loader] = None,
        on_empty: Optional[Callable[[], Awaitable[Any]]] = None,
        source: str = "airtable"
    ):
        self._loader = loader
        self._on_empty = on_empty
        self.source = source

        self.subscribers: List[Subscriber] = []
        self.loading = False
        self.error: Optional[str] = None
        self.initialized = False

        self._inflight: Optional[asyncio.Task] = None

    @property
    def manual_entry(self) -> bool:
        return self._loader is None

    def snapshot(self) -> CacheEntry:
        return CacheEntry(
            data=list(self.subscribers),
            loading=self.loading,
            error=self.error,
            initialized=self.initialized,
            manual_entry=self.manual_entry,
        )

    async def ensure_loaded(self) -> CacheEntry:
        """Serve from cache, or join/start the shared fetch"""
        if self.initialized and self._inflight is None:
            return self.snapshot()
        return await self._load()

    async def reload(self) -> CacheEntry:
        """Invalidate and re-fetch. Joins a fetch that is already in flight."""
        if self._inflight is None:
            logger.info("[Cache] Manual reload requested")
            self.initialized = False
        return await self._load()

    async def _load(self) -> CacheEntry:
        if self._loader is None:
            if not self.initialized:
                logger.info("[Cache] Airtable not configured, manual subscriber entry enabled")
            self.subscribers = []
            self.error = None
            self.initialized = True
            return self.snapshot()

        if self._inflight is None:
            self._inflight = asyncio.get_running_loop().create_task(self._fetch())
        else:
            logger.debug("[Cache] Fetch already in flight, waiting")

        await asyncio.shield(self._inflight)
        return self.snapshot()

    async def _fetch(self) -> None:
        self.loading = True
        self.error = None
        try:
            logger.info(f"[Cache] Loading subscribers from {self.source}")
            data = await self._loader()

            if not data and self._on_empty is not None:
                data = await self._refill()

            self.subscribers = data
            self.error = None
            logger.info(f"[Cache] {len(data)} subscribers loaded")
        except Exception as e:
            logger.error(f"[Cache] Subscriber load failed: {e}")
            self.subscribers = []
            self.error = f"Subscriber fetch failed: {summarize(e)}"
        finally:
            self.loading = False
            self.initialized = True
            self._inflight = None

    async def _refill(self) -> List[Subscriber]:
        """Empty replica: run the mirror once, then read again"""
        logger.info("[Cache] Replica empty, triggering subscriber sync")
        try:
            await self._on_empty()
        except Exception as e:
            logger.warning(f"[Cache] Sync on empty cache failed: {e}")
            return []
        return await self._loader()

    # =========================================================================
    # Lookups (no network)
    # =========================================================================

    def resolver(self) -> SubscriberResolver:
        return SubscriberResolver(self.subscribers)

    def search(self, text: str) -> List[Subscriber]:
        return self.resolver().search(text)

    def resolve(self, hint: Union[str, EmailSender], body: Optional[str] = None) -> Resolution:
        return self.resolver().resolve(hint, body=body)

    def get(self, subscriber_id: str) -> Optional[Subscriber]:
        return next((s for s in self.subscribers if subscriber_id in (s.id, s.key)), None)
