"""
Reverse (newest-first) pagination

Turns "page N" into an id window below the anchor:

    Page 1 = ids (maxId - perPage, maxId]
    Page 2 = ids (maxId - 2*perPage, maxId - perPage]
    ...
    Last window is clipped at 0

One bounded range query per page instead of draining the collection.
Totals are estimated from the anchor, not counted.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Tuple

from gallery.models import ImageMeta
from gallery.services.anchor_cache import AnchorCache
from gallery.services.arkiv_client import gt, lte
from gallery.services.image_collection import ImageCollection
from gallery.services.materialization import Materializer
from gallery.services.progress import NullProgress, ProgressNotifier
from gallery.utils.pagination import slice_page, total_pages
from gallery.utils.projection import project_entities, sort_newest_first

logger = logging.getLogger(__name__)


@dataclass
class PageResult:
    images: List[ImageMeta] = field(default_factory=list)
    total: int = 0
    total_pages: int = 0


def window(page: int, per_page: int, max_id: int) -> Tuple[int, int]:
    """
    Id range (lower, upper] covered by `page`

    Consecutive pages are contiguous: window(p)[0] == window(p + 1)[1]
    until the floor of 0 is reached.
    """
    upper = max_id - (page - 1) * per_page
    lower = max(0, upper - per_page)
    return lower, upper


class ReversePaginator:
    """Newest-first pages from id range queries"""

    def __init__(
        self,
        collection: ImageCollection,
        anchor: AnchorCache,
        materializer: Materializer,
        headroom: int = 10
    ):
        self.collection = collection
        self.anchor = anchor
        self.materializer = materializer
        self.headroom = headroom

    async def get_page(
        self,
        page: int,
        per_page: int,
        on_progress: ProgressNotifier = NullProgress()
    ) -> PageResult:
        on_progress("Connecting to ARKIV...")

        max_id = await self.anchor.ensure_anchor(on_progress)
        lower, upper = window(page, per_page, max_id)

        images: List[ImageMeta] = []
        if upper > 0:
            on_progress(f"Loading images {lower + 1} to {upper}...")
            images = await self._fetch_window(lower, upper, per_page)

        # Ids not yet stored as numeric attributes can't be range-queried.
        # Only the first page falls back to loading everything.
        if not images and page == 1 and max_id > 0:
            logger.warning("🔄 Empty window (%d, %d] on page 1, falling back to full load", lower, upper)
            on_progress("Falling back to full load (IDs still migrating)...")
            all_images = await self.materializer.drain_all(on_progress)
            total = len(all_images)
            return PageResult(
                images=slice_page(all_images, page, per_page),
                total=total,
                total_pages=total_pages(total, per_page)
            )

        # The store doesn't guarantee order for range queries
        images = sort_newest_first(images)[:per_page]

        total = self.anchor.estimate_total()
        on_progress("Complete", len(images))
        return PageResult(images=images, total=total, total_pages=total_pages(total, per_page))

    async def _fetch_window(self, lower: int, upper: int, per_page: int) -> List[ImageMeta]:
        """Images with lower < id <= upper, at least per_page if available"""
        result = await self.collection.query() \
            .where(gt("id", lower)) \
            .where(lte("id", upper)) \
            .limit(per_page + self.headroom) \
            .fetch()

        images = project_entities(result.entities)
        while len(images) < per_page and result.has_next_page():
            await result.next()
            images.extend(project_entities(result.entities))
        return images
