"""
Gallery Service

Single entry point for serving image pages. Two independent strategies:
- Newest-first pages (reverse id windows, or full load + filter for search)
- Resumable forward sessions (live remote cursor per client)

Callers pick the strategy by intent; neither depends on the other.
"""

import logging
from typing import Optional

from gallery.config import settings
from gallery.models import ImagesResponse, Pagination, SessionImagesResponse
from gallery.services.anchor_cache import AnchorCache
from gallery.services.arkiv_client import ArkivClient
from gallery.services.image_collection import ImageCollection
from gallery.services.materialization import Materializer, filter_by_prompt
from gallery.services.progress import NullProgress, ProgressNotifier
from gallery.services.reverse_pagination import ReversePaginator
from gallery.services.session_store import SessionPage, SessionStore
from gallery.utils.pagination import slice_page, total_pages

logger = logging.getLogger(__name__)


class GalleryService:
    """Wires the collection, caches and pagination engines together"""

    def __init__(self, client: ArkivClient, owner: str, config=settings):
        self.client = client
        self.collection = ImageCollection(
            client,
            owner=owner,
            app=config.IMAGE_APP,
            entity_type=config.IMAGE_TYPE
        )
        self.anchor = AnchorCache(
            self.collection,
            probe_limit=config.ANCHOR_PROBE_LIMIT,
            refresh_limit=config.ANCHOR_REFRESH_LIMIT
        )
        self.materializer = Materializer(self.collection, self.anchor, page_size=config.DRAIN_PAGE_SIZE)
        self.paginator = ReversePaginator(
            self.collection,
            self.anchor,
            self.materializer,
            headroom=config.RANGE_HEADROOM
        )
        self.sessions = SessionStore(self.collection, ttl=config.SESSION_TTL)

    async def list_newest(
        self,
        page: int,
        per_page: int,
        search: str = "",
        on_progress: ProgressNotifier = NullProgress()
    ) -> ImagesResponse:
        """
        Newest-first page, optionally filtered by prompt substring

        Search has to load every image first; otherwise one id window
        is fetched.
        """
        search = (search or "").strip().lower()

        if search:
            on_progress("Search requires loading all data...")
            images = await self.materializer.drain_all(on_progress)

            on_progress("Filtering results...", len(images))
            filtered = filter_by_prompt(images, search)
            total = len(filtered)
            logger.info("🔎 [Search] '%s' matched %d of %d images", search, total, len(images))

            return ImagesResponse(
                images=slice_page(filtered, page, per_page),
                pagination=Pagination(
                    page=page,
                    per_page=per_page,
                    total=total,
                    total_pages=total_pages(total, per_page)
                )
            )

        result = await self.paginator.get_page(page, per_page, on_progress)
        return ImagesResponse(
            images=result.images,
            pagination=Pagination(
                page=page,
                per_page=per_page,
                total=result.total,
                total_pages=result.total_pages
            )
        )

    async def resume(self, session_id: Optional[str], limit: int) -> SessionImagesResponse:
        """
        Next page of a cursor session, starting one if no token is given

        Raises:
            SessionNotFound: unknown or expired token
        """
        if session_id:
            page: SessionPage = await self.sessions.continue_session(session_id)
        else:
            page = await self.sessions.create_session(limit)

        return SessionImagesResponse(
            images=page.images,
            session_id=page.session_id,
            has_more=page.has_more
        )

    async def fetch_image(self, key: str) -> Optional[bytes]:
        return await self.collection.fetch_payload(key)

    def stats(self) -> dict:
        return {
            "anchor": self.anchor.cached_max_id,
            "estimated_total": self.anchor.estimate_total(),
            "active_sessions": len(self.sessions),
            "remote": dict(self.client.stats)
        }

    async def aclose(self) -> None:
        await self.client.aclose()


# Singleton instance
_gallery_service = None

def get_gallery_service() -> GalleryService:
    """Get or create the gallery service singleton"""
    global _gallery_service
    if _gallery_service is None:
        client = ArkivClient(settings.RPC_URL, timeout=settings.RPC_TIMEOUT)
        _gallery_service = GalleryService(client, owner=settings.ACCOUNT_ADR)
    return _gallery_service


async def close_gallery_service() -> None:
    """Close the singleton's HTTP client (shutdown)"""
    global _gallery_service
    if _gallery_service is not None:
        await _gallery_service.aclose()
        _gallery_service = None
