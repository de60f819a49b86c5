"""
Full materialization

Loads every image by draining the remote cursor. This is the only way to
answer substring search (the query language has no text operator) and
the fallback when id windows come back empty.

Cost: one request per DRAIN_PAGE_SIZE images, everything held in memory.
"""

import logging
from typing import List

from gallery.models import ImageMeta
from gallery.services.anchor_cache import AnchorCache
from gallery.services.image_collection import ImageCollection
from gallery.services.progress import NullProgress, ProgressNotifier
from gallery.utils.projection import max_id, project_entities, sort_newest_first

logger = logging.getLogger(__name__)


class Materializer:
    """Drains the image collection into memory, newest first"""

    def __init__(self, collection: ImageCollection, anchor: AnchorCache, page_size: int = 50):
        self.collection = collection
        self.anchor = anchor
        self.page_size = page_size

    async def drain_all(self, on_progress: ProgressNotifier = NullProgress()) -> List[ImageMeta]:
        """
        Fetch every image page by page

        A failure on any page aborts the whole drain.
        """
        on_progress("Loading all images for search...")

        result = await self.collection.query().limit(self.page_size).fetch()
        images = project_entities(result.entities)
        page_num = 1
        on_progress(f"Loading page {page_num}...", len(images))

        while result.has_next_page():
            page_num += 1
            await result.next()
            images.extend(project_entities(result.entities))
            on_progress(f"Loading page {page_num}...", len(images))

        images = sort_newest_first(images)
        if images:
            self.anchor.observe(max_id(images))

        logger.info("📚 Loaded %d images in %d pages", len(images), page_num)
        on_progress("Complete", len(images))
        return images


def filter_by_prompt(images: List[ImageMeta], search: str) -> List[ImageMeta]:
    """Case-insensitive substring match on the prompt"""
    needle = search.strip().lower()
    if not needle:
        return list(images)
    return [image for image in images if needle in image.prompt.lower()]
