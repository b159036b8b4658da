"""Fan-out of call record changes to live dashboard subscribers."""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Set

from pydantic import BaseModel

logger = logging.getLogger(__name__)

CALL_CREATED = "call_created"
CALL_UPDATED = "call_updated"


class CallEvent(BaseModel):
    """One published event. The payload is always a full call snapshot."""

    event: str
    data: Dict[str, Any]


class EventBroadcaster:
    """Best-effort, at-most-once publisher.

    publish() never blocks and never raises. With no subscribers attached it
    does nothing, and a subscriber whose queue is full misses the event.
    """

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._subscribers: Set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._subscribers.add(queue)
        logger.debug(f"[BROADCAST] Subscriber added ({len(self._subscribers)} total)")
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)
        logger.debug(f"[BROADCAST] Subscriber removed ({len(self._subscribers)} total)")

    @asynccontextmanager
    async def subscription(self) -> AsyncIterator[asyncio.Queue]:
        queue = self.subscribe()
        try:
            yield queue
        finally:
            self.unsubscribe(queue)

    def publish(self, event_name: str, payload: Dict[str, Any]) -> None:
        if not self._subscribers:
            return

        event = CallEvent(event=event_name, data=payload)
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(f"[BROADCAST] Subscriber queue full, dropping '{event_name}'")
