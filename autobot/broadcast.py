"""Fire-and-forget push of debug events to connected observers."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Sequence, Set

from .models import DebugEvent

logger = logging.getLogger(__name__)

Subscriber = Callable[[Dict[str, Any]], Awaitable[None]]


class DebugEventBroadcaster:
    """
    Publishes ``{"type": "debug_events", "events": [...]}`` to every subscriber.

    Delivery is best effort and at most once; a subscriber whose send fails is
    dropped. There is no replay for late subscribers.
    """

    def __init__(self):
        self._subscribers: Set[Subscriber] = set()
        self._pending: Set[asyncio.Task] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.add(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.discard(subscriber)

    def publish(self, conversation_id: str, events: Sequence[DebugEvent]) -> None:
        if not self._subscribers or not events:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; dropping %d debug events", len(events))
            return

        message = {
            "type": "debug_events",
            "conversationId": conversation_id,
            "events": [event.to_dict() for event in events],
        }
        for subscriber in list(self._subscribers):
            task = loop.create_task(self._deliver(subscriber, message))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for deliveries already scheduled."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _deliver(self, subscriber: Subscriber, message: Dict[str, Any]) -> None:
        try:
            await subscriber(message)
        except Exception as exc:
            logger.warning("Dropping debug event subscriber after failed send: %s", exc)
            self.unsubscribe(subscriber)
