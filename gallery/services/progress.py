"""
Progress notifiers

Engines report human-readable progress through a ProgressNotifier.
The JSON endpoints pass NullProgress, the streaming endpoint passes a
QueueProgress whose events are forwarded to the client as SSE.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


class ProgressNotifier(Protocol):
    def __call__(self, status: str, count: int = 0) -> None: ...


class NullProgress:
    """Discards progress; logs at debug level only"""

    def __call__(self, status: str, count: int = 0) -> None:
        logger.debug("%s (%d)", status, count)


class QueueProgress:
    """
    Pushes ("progress", {status, count}) events onto an asyncio queue

    The same queue carries the terminal event ("complete" or "error"),
    followed by None to mark the end of the stream.
    """

    def __init__(self, queue: Optional["asyncio.Queue[Optional[Tuple[str, Dict[str, Any]]]]"] = None):
        self.queue = queue if queue is not None else asyncio.Queue()

    def __call__(self, status: str, count: int = 0) -> None:
        self.queue.put_nowait(("progress", {"status": status, "count": count or 0}))

    def finish(self, event: str, data: Dict[str, Any]) -> None:
        self.queue.put_nowait((event, data))

    def close(self) -> None:
        self.queue.put_nowait(None)
