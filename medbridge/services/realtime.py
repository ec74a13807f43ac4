"""In-process change feed and the push channel built on it."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

from medbridge.schemas.events import ChangeEvent, ChannelStatus

logger = logging.getLogger(__name__)

_CLOSED = object()


@dataclass(eq=False)
class Subscription:
    """One subscriber queue bound to the event loop that created it."""

    conversation_id: str
    loop: asyncio.AbstractEventLoop
    queue: asyncio.Queue = field(default_factory=asyncio.Queue)
    closed: bool = False

    def deliver(self, item: object) -> None:
        if self.closed:
            return
        try:
            self.loop.call_soon_threadsafe(self.queue.put_nowait, item)
        except RuntimeError:
            # Loop already closed; the subscriber is gone.
            self.closed = True

    def __aiter__(self) -> AsyncIterator[ChangeEvent]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[ChangeEvent]:
        while True:
            item = await self.queue.get()
            if item is _CLOSED:
                return
            yield item


class ChangeFeed:
    """Thread-safe broadcaster of message change events per conversation.

    Publishers may run in worker threads (sync request handlers); every
    subscriber receives events on its own event loop. No ordering guarantee
    is made across publishers.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: list[Subscription] = []

    def subscribe(self, conversation_id: str) -> Subscription:
        subscription = Subscription(conversation_id=conversation_id, loop=asyncio.get_running_loop())
        with self._lock:
            self._subscriptions.append(subscription)
        logger.info("realtime.subscribed conversation_id=%s", conversation_id)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
        subscription.deliver(_CLOSED)
        subscription.closed = True
        logger.info("realtime.unsubscribed conversation_id=%s", subscription.conversation_id)

    def publish(self, conversation_id: str, event: ChangeEvent) -> int:
        """Deliver ``event`` to every subscriber of the conversation; returns the fan-out."""

        with self._lock:
            targets = [sub for sub in self._subscriptions if sub.conversation_id == conversation_id]
        for subscription in targets:
            subscription.deliver(event)
        logger.debug(
            "realtime.published conversation_id=%s kind=%s message_id=%s subscribers=%d",
            conversation_id,
            event.kind,
            event.message_id,
            len(targets),
        )
        return len(targets)

    def subscriber_count(self, conversation_id: str | None = None) -> int:
        with self._lock:
            if conversation_id is None:
                return len(self._subscriptions)
            return sum(1 for sub in self._subscriptions if sub.conversation_id == conversation_id)


_default_feed = ChangeFeed()


def get_change_feed() -> ChangeFeed:
    """Return the process-wide change feed."""

    return _default_feed


class FeedChannel:
    """Push channel over a ``ChangeFeed`` for one conversation.

    Yields ``ChannelStatus.SUBSCRIBED`` once the subscription is live, then
    each event, and ``ChannelStatus.CLOSED`` when closed.
    """

    def __init__(self, feed: ChangeFeed, conversation_id: str) -> None:
        self.feed = feed
        self.conversation_id = conversation_id
        self._subscription: Subscription | None = None

    async def events(self) -> AsyncIterator[ChangeEvent | ChannelStatus]:
        self._subscription = self.feed.subscribe(self.conversation_id)
        yield ChannelStatus.SUBSCRIBED
        try:
            async for event in self._subscription:
                yield event
        finally:
            self.close()
        yield ChannelStatus.CLOSED

    def close(self) -> None:
        if self._subscription is not None and not self._subscription.closed:
            self.feed.unsubscribe(self._subscription)
