"""Stock change broadcaster.

A registry keyed by event id, each entry holding the set of live
subscriptions for that event. Publishing enqueues into every subscription's
own unbounded queue, so a subscriber that stops reading never holds up
anyone else. The registry lock is independent of any ledger lock.
"""

import logging
import queue
import threading
import time
from collections import defaultdict
from collections.abc import Callable, Iterator

from ticketing.domain import EventId, StockDelta, TierId

logger = logging.getLogger(__name__)

SnapshotProvider = Callable[[EventId], list[StockDelta]]

_CLOSED = object()


class Subscription:
    """Lazy, unbounded stream of StockDelta for one event.

    A newly created subscription yields the event's snapshot first. Deltas
    whose version is not newer than the last one seen for their tier are
    dropped, so remaining counts are never observed out of commit order.
    """

    def __init__(self, broadcaster: "StockBroadcaster", event_id: EventId) -> None:
        self.event_id = event_id
        self._broadcaster = broadcaster
        self._queue: queue.SimpleQueue = queue.SimpleQueue()
        self._lock = threading.Lock()
        self._held: list[StockDelta] | None = []
        self._last_version: dict[TierId, int] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def deliver(self, delta: StockDelta) -> None:
        with self._lock:
            if self._closed:
                return
            if self._held is not None:
                self._held.append(delta)
                return
        self._queue.put(delta)

    def _open(self, snapshot: list[StockDelta]) -> None:
        # Snapshot goes ahead of anything published while it was being read.
        with self._lock:
            for delta in snapshot:
                self._queue.put(delta)
            for delta in self._held or ():
                self._queue.put(delta)
            self._held = None

    def _shutdown(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._held = None
        self._queue.put(_CLOSED)

    def get(self, timeout: float | None = None) -> StockDelta | None:
        """Return the next fresh delta, or None on timeout or close."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            wait = None if deadline is None else max(deadline - time.monotonic(), 0)
            try:
                item = self._queue.get(timeout=wait)
            except queue.Empty:
                return None
            if item is _CLOSED:
                self._queue.put(_CLOSED)
                return None
            last = self._last_version.get(item.tier_id)
            if last is not None and item.version <= last:
                continue
            self._last_version[item.tier_id] = item.version
            return item

    def __iter__(self) -> Iterator[StockDelta]:
        while True:
            delta = self.get()
            if delta is None:
                return
            yield delta

    def close(self) -> None:
        self._broadcaster.unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class StockBroadcaster:
    """Fans StockDelta messages out to the subscribers of an event."""

    def __init__(self, snapshot_provider: SnapshotProvider | None = None) -> None:
        self._snapshot_provider = snapshot_provider
        self._subscribers: dict[EventId, set[Subscription]] = defaultdict(set)
        self._lock = threading.Lock()

    def subscribe(self, event_id: EventId) -> Subscription:
        subscription = Subscription(self, event_id)
        with self._lock:
            self._subscribers[event_id].add(subscription)
        try:
            snapshot = self._snapshot_provider(event_id) if self._snapshot_provider else []
        except Exception:
            self.unsubscribe(subscription)
            raise
        subscription._open(snapshot)
        logger.info(
            "Stock subscription opened: event_id=%s, subscribers=%d",
            event_id,
            self.subscriber_count(event_id),
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subscribers = self._subscribers.get(subscription.event_id)
            if subscribers is not None:
                subscribers.discard(subscription)
                if not subscribers:
                    del self._subscribers[subscription.event_id]
        if not subscription.closed:
            subscription._shutdown()
            logger.info("Stock subscription closed: event_id=%s", subscription.event_id)

    def publish(self, event_id: EventId, delta: StockDelta) -> int:
        """Deliver a delta to every current subscriber of the event.

        Returns the number of subscribers it was handed to.
        """
        with self._lock:
            subscribers = list(self._subscribers.get(event_id, ()))
        delivered = 0
        for subscription in subscribers:
            try:
                subscription.deliver(delta)
            except Exception:
                logger.exception("Dropping stock subscriber for event %s", event_id)
                self.unsubscribe(subscription)
                continue
            delivered += 1
        return delivered

    def subscriber_count(self, event_id: EventId) -> int:
        with self._lock:
            return len(self._subscribers.get(event_id, ()))
