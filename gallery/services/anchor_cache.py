"""
Anchor Cache
============

Keeps the newest known image id so newest-first pages can be computed
as id windows instead of scanning the whole collection.

Cost model (every remote query is billed):
- First call: 1 probe over up to ANCHOR_PROBE_LIMIT images
- Later calls: 1 probe for ids strictly greater than the anchor

The anchor only ever moves up. It is never expired by time, so it may
lag behind the store until the next "anything newer?" probe.
"""

import asyncio
import logging
from typing import Optional

from gallery.services.arkiv_client import gt
from gallery.services.image_collection import ImageCollection
from gallery.services.progress import NullProgress, ProgressNotifier
from gallery.utils.projection import max_id, project_entities

logger = logging.getLogger(__name__)


class AnchorCache:
    """Process-wide single-slot cache of the highest image id"""

    def __init__(self, collection: ImageCollection, probe_limit: int = 200, refresh_limit: int = 100):
        self.collection = collection
        self.probe_limit = probe_limit
        self.refresh_limit = refresh_limit
        self.cached_max_id: Optional[int] = None
        self._inflight: Optional["asyncio.Task[int]"] = None  # Lookup shared by concurrent callers

    async def ensure_anchor(self, on_progress: ProgressNotifier = NullProgress()) -> int:
        """
        Return the anchor, discovering or refreshing it first

        Performs at most one remote query per call. Callers arriving while
        a lookup is in flight wait for it instead of sending another query.
        """
        on_progress("Finding newest images...")

        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._load())
            self._inflight.add_done_callback(self._lookup_done)
        return await asyncio.shield(self._inflight)

    async def _load(self) -> int:
        if self.cached_max_id is None:
            return await self._probe()
        return await self._refresh()

    def _lookup_done(self, task: "asyncio.Task[int]") -> None:
        if self._inflight is task:
            self._inflight = None

    async def _probe(self) -> int:
        result = await self.collection.query().limit(self.probe_limit).fetch()
        images = project_entities(result.entities)
        self.cached_max_id = max_id(images)
        logger.info("⚓ Found max ID: %d", self.cached_max_id)
        return self.cached_max_id

    async def _refresh(self) -> int:
        result = await self.collection.query() \
            .where(gt("id", self.cached_max_id)) \
            .limit(self.refresh_limit) \
            .fetch()

        if result.entities:
            self.observe(max_id(project_entities(result.entities)))
        return self.cached_max_id

    def observe(self, observed_max_id: int) -> None:
        """Raise the anchor to `observed_max_id` if it is higher"""
        if self.cached_max_id is None or observed_max_id > self.cached_max_id:
            self.cached_max_id = observed_max_id
            logger.info("⚓ Updated max ID: %d", self.cached_max_id)

    def estimate_total(self) -> int:
        """
        Approximate number of images

        Ids are assumed to be a dense sequence starting near zero,
        so the highest id doubles as the total count.
        """
        return self.cached_max_id or 0
