"""
Cursor Session Store
====================

Keeps a live remote cursor per client so "next page" costs exactly one
remote request, with no re-query from the start.

Lifecycle of a session:
1. create_session(): first page fetched, cursor stored under a random token
2. continue_session(): cursor advanced one page, timestamp refreshed
3. sweep(): sessions untouched for longer than the TTL are dropped and
   their cursors closed

Sessions are forward-only; there is no random page access.
"""

import asyncio
import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List

from gallery.models import ImageMeta
from gallery.services.arkiv_client import QueryResult
from gallery.services.image_collection import ImageCollection
from gallery.utils.projection import project_entities

logger = logging.getLogger(__name__)


class SessionNotFound(Exception):
    """Unknown or expired session token"""


@dataclass
class PaginationSession:
    session_id: str
    cursor: QueryResult
    per_page: int
    created_at: float  # Last touch, refreshed on every advance
    current_page: int = 1
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


@dataclass
class SessionPage:
    session_id: str
    images: List[ImageMeta]
    has_more: bool


class SessionStore:
    """In-memory store of live cursors keyed by opaque tokens"""

    def __init__(
        self,
        collection: ImageCollection,
        ttl: float = 300,
        clock: Callable[[], float] = time.monotonic
    ):
        self.collection = collection
        self.ttl = ttl
        self.clock = clock
        self._sessions: Dict[str, PaginationSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    async def create_session(self, per_page: int) -> SessionPage:
        """Run the newest-first query and keep its cursor"""
        cursor = await self.collection.query() \
            .order_by("id", numeric=True, descending=True) \
            .limit(per_page) \
            .fetch()

        session_id = secrets.token_urlsafe(24)
        self._sessions[session_id] = PaginationSession(
            session_id=session_id,
            cursor=cursor,
            per_page=per_page,
            created_at=self.clock()
        )
        logger.info("🆕 Session %s… created (%d active)", session_id[:8], len(self._sessions))

        return SessionPage(
            session_id=session_id,
            images=project_entities(cursor.entities),
            has_more=cursor.has_next_page()
        )

    async def continue_session(self, session_id: str) -> SessionPage:
        """
        Advance a session by exactly one page

        Raises:
            SessionNotFound: token unknown, or last touched more than TTL ago
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        if self._expired(session):
            self._release(session_id)
            raise SessionNotFound(session_id)

        async with session.lock:
            if not session.cursor.has_next_page():
                return SessionPage(session_id=session_id, images=[], has_more=False)

            await session.cursor.next()
            session.current_page += 1
            session.created_at = self.clock()

            return SessionPage(
                session_id=session_id,
                images=project_entities(session.cursor.entities),
                has_more=session.cursor.has_next_page()
            )

    def sweep(self) -> int:
        """Drop sessions whose last touch is older than the TTL"""
        expired = [sid for sid, session in self._sessions.items() if self._expired(session)]
        for session_id in expired:
            self._release(session_id)

        if expired:
            logger.info("🧹 Swept %d expired sessions (%d active)", len(expired), len(self._sessions))
        return len(expired)

    def _expired(self, session: PaginationSession) -> bool:
        return self.clock() - session.created_at > self.ttl

    def _release(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.cursor.close()
