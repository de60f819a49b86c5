from fastapi import APIRouter, Query, Response
from fastapi.responses import JSONResponse, StreamingResponse
from typing import Optional
import asyncio
import json
import logging

from gallery.config import settings
from gallery.models import ErrorResponse
from gallery.services.gallery_service import get_gallery_service
from gallery.services.progress import QueueProgress
from gallery.services.session_store import SessionNotFound

logger = logging.getLogger(__name__)

router = APIRouter()

FETCH_ERROR = "Failed to fetch images"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(exclude_none=True)
    )


def format_sse(event: str, data: dict) -> str:
    """Encode one server-sent event"""
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


@router.get("/images")
async def list_images(
    page: int = Query(1, ge=1),
    per_page: Optional[int] = Query(None, alias="perPage", ge=1, le=settings.MAX_PER_PAGE),
    search: str = "",
    session_id: Optional[str] = Query(None, alias="sessionId"),
    limit: Optional[int] = Query(None, ge=1, le=settings.MAX_PER_PAGE)
):
    """
    Image metadata, newest first

    **Reverse pagination (default):**
    - Request: GET /api/images?page=2&perPage=50
    - Response: images + pagination {page, perPage, total, totalPages}
    - `total` is estimated from the newest id unless `search` is given

    **Search:**
    - GET /api/images?search=dog loads every image and filters by prompt

    **Cursor sessions:**
    - GET /api/images?limit=20 (with PAGINATION_MODE=session) starts a session
    - GET /api/images?sessionId=<token> returns the next page
    - Response: images + sessionId + hasMore
    """
    service = get_gallery_service()

    if session_id or settings.PAGINATION_MODE == "session":
        try:
            result = await service.resume(session_id, limit or settings.DEFAULT_SESSION_LIMIT)
            return result.model_dump(by_alias=True)
        except SessionNotFound:
            return _error(404, "Session not found or expired")
        except Exception as e:
            logger.error("Error fetching session page: %s", e)
            return _error(500, FETCH_ERROR)

    try:
        result = await service.list_newest(page, per_page or settings.DEFAULT_PER_PAGE, search)
        return result.model_dump(by_alias=True)
    except Exception as e:
        logger.error("Error fetching images: %s", e)
        return _error(500, FETCH_ERROR)


@router.get("/images/stream")
async def stream_images(
    page: int = Query(1, ge=1),
    per_page: Optional[int] = Query(None, alias="perPage", ge=1, le=settings.MAX_PER_PAGE),
    search: str = ""
):
    """
    Same as /api/images but streamed as server-sent events

    Events:
    - progress: {status, count} (zero or more)
    - complete: {images, pagination} or error: {error} (exactly one, last)
    """
    service = get_gallery_service()
    per_page = per_page or settings.DEFAULT_STREAM_PER_PAGE
    notifier = QueueProgress()

    async def produce():
        try:
            result = await service.list_newest(page, per_page, search, notifier)
            notifier.finish("complete", result.model_dump(by_alias=True))
        except Exception as e:
            logger.error("Error in SSE: %s", e)
            notifier.finish("error", {"error": FETCH_ERROR})
        finally:
            notifier.close()

    async def event_stream():
        task = asyncio.create_task(produce())
        try:
            while True:
                item = await notifier.queue.get()
                if item is None:
                    break
                event, data = item
                yield format_sse(event, data)
        finally:
            # Client went away mid-drain
            if not task.done():
                task.cancel()

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no"
        }
    )


@router.get("/image")
async def get_image(key: Optional[str] = None):
    """
    Raw PNG payload of one image by entity key
    """
    if not key:
        return _error(400, "Missing key parameter")

    try:
        data = await get_gallery_service().fetch_image(key)
    except Exception as e:
        logger.error("Error fetching image %s: %s", key, e)
        return _error(500, "Error fetching image")

    if not data:
        return _error(404, "Image not found")

    return Response(
        content=data,
        media_type="image/png",
        headers={
            "Cache-Control": f"public, max-age={settings.IMAGE_CACHE_MAX_AGE}",
            "Access-Control-Expose-Headers": "Content-Length"
        }
    )
