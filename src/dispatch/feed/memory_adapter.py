"""In-memory change feed — single-process notifications for development
and tests.

Each subscriber owns an ``asyncio.Queue`` bound to the event loop that
opened it. Publishers may run on any thread (request handlers run in a
thread pool), so notifications are handed over with
``call_soon_threadsafe``.
"""

import asyncio
import threading
from collections import defaultdict, deque

from dispatch.feed.port import ChangeFeedPort, Subscription

PUBLISHED_HISTORY = 1000


class InMemorySubscription(Subscription):
    def __init__(self, feed: "InMemoryChangeFeed", delivery_id: str):
        self.feed = feed
        self.delivery_id = delivery_id
        self.loop: asyncio.AbstractEventLoop | None = None
        self.queue: asyncio.Queue | None = None
        self.closed = False

    async def open(self) -> None:
        self.loop = asyncio.get_running_loop()
        self.queue = asyncio.Queue()
        self.feed._register(self)

    def notify(self) -> None:
        if self.closed or self.loop is None or self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(self._enqueue)

    def _enqueue(self) -> None:
        # A pending notification already tells the watcher to re-read
        if self.queue.empty():
            self.queue.put_nowait(self.delivery_id)

    async def __anext__(self) -> str:
        if self.closed:
            raise StopAsyncIteration
        return await self.queue.get()

    async def close(self) -> None:
        self.closed = True
        self.feed._unregister(self)


class InMemoryChangeFeed(ChangeFeedPort):
    """Process-local feed. The most recent published ids are kept for
    inspection, up to ``history`` of them.
    """

    def __init__(self, history: int = PUBLISHED_HISTORY):
        self._lock = threading.Lock()
        self._subscribers: dict[str, set[InMemorySubscription]] = defaultdict(set)
        self.published: deque[str] = deque(maxlen=history)

    def publish(self, delivery_id: str) -> None:
        delivery_id = str(delivery_id)
        with self._lock:
            self.published.append(delivery_id)
            subscribers = list(self._subscribers.get(delivery_id, ()))
        for subscription in subscribers:
            subscription.notify()

    def subscribe(self, delivery_id: str) -> InMemorySubscription:
        return InMemorySubscription(self, str(delivery_id))

    def subscriber_count(self, delivery_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get(str(delivery_id), ()))

    def _register(self, subscription: InMemorySubscription) -> None:
        with self._lock:
            self._subscribers[subscription.delivery_id].add(subscription)

    def _unregister(self, subscription: InMemorySubscription) -> None:
        with self._lock:
            subscribers = self._subscribers.get(subscription.delivery_id)
            if subscribers is None:
                return
            subscribers.discard(subscription)
            if not subscribers:
                del self._subscribers[subscription.delivery_id]

    def close(self) -> None:
        with self._lock:
            subscriptions = [s for subs in self._subscribers.values() for s in subs]
            self._subscribers.clear()
        for subscription in subscriptions:
            subscription.closed = True
