"""
In-memory topic based publish/subscribe hub for live notifications.

Topics are plain strings. Each subscriber owns a bounded queue; publishing never
waits on a subscriber: when its queue is full the event is dropped for that
subscriber only. The topic -> subscribers map is the only shared state and is
guarded by a single lock that is never held while delivering.

Topics in use:
- user:<id>          events about one patron's orders
- role:<ROLE>        events for every connected ADMIN / BARTENDER
- orders:global      every order change
- inventory:global   product / cocktail catalog changes
"""

import asyncio
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional, Set, Tuple

from core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CAPACITY = 16

TOPIC_ORDERS = "orders:global"
TOPIC_INVENTORY = "inventory:global"

ORDER_CREATED = "order:created"
ORDER_UPDATED = "order:updated"
INVENTORY_UPDATED = "inventory:updated"


def topic_user(user_id: int) -> str:
    return f"user:{user_id}"


def topic_role(role: str) -> str:
    return f"role:{role}"


@dataclass(frozen=True)
class HubEvent:
    type: str
    data: Any


class SubscriptionClosed(Exception):
    pass


_CLOSED = object()


class Subscription:
    """Receiving end of a hub subscription.

    Only the connection that subscribed reads from it, so the queue needs no
    locking beyond what asyncio.Queue gives.
    """

    def __init__(self, topics: Tuple[str, ...], capacity: int):
        self.topics = topics
        self.capacity = capacity
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=capacity)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, event: HubEvent) -> bool:
        if self._closed:
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            return False
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Make room for the wake-up marker; pending events are discarded anyway.
        while True:
            try:
                self._queue.put_nowait(_CLOSED)
                return
            except asyncio.QueueFull:
                self._queue.get_nowait()

    def get_nowait(self) -> Optional[HubEvent]:
        """Next queued event, None if the queue is empty."""
        try:
            item = self._queue.get_nowait()
        except asyncio.QueueEmpty:
            if self._closed:
                raise SubscriptionClosed()
            return None
        if item is _CLOSED:
            raise SubscriptionClosed()
        return item

    async def get(self) -> HubEvent:
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the marker for any other waiter.
            self._queue.put_nowait(_CLOSED)
            raise SubscriptionClosed()
        return item

    def __aiter__(self):
        return self

    async def __anext__(self) -> HubEvent:
        try:
            return await self.get()
        except SubscriptionClosed:
            raise StopAsyncIteration


class NotificationHub:
    def __init__(self):
        self._lock = threading.Lock()
        self._subs: Dict[str, Set[Subscription]] = {}

    def subscribe(
        self, topics: Iterable[str], capacity: int = DEFAULT_CAPACITY
    ) -> Tuple[Subscription, Callable[[], None]]:
        if capacity <= 0:
            capacity = DEFAULT_CAPACITY
        topics = tuple(dict.fromkeys(topics))
        sub = Subscription(topics, capacity)

        with self._lock:
            for topic in topics:
                self._subs.setdefault(topic, set()).add(sub)

        def unsubscribe() -> None:
            with self._lock:
                for topic in topics:
                    members = self._subs.get(topic)
                    if members is None:
                        continue
                    members.discard(sub)
                    if not members:
                        del self._subs[topic]
            sub.close()

        logger.debug("Hub subscription opened", topics=list(topics), capacity=capacity)
        return sub, unsubscribe

    def publish(self, topic: str, event: HubEvent) -> int:
        """Deliver `event` to every current subscriber of `topic`.

        Returns how many subscribers accepted it; full queues are skipped.
        """
        return self.publish_many((topic,), event)

    def publish_many(self, topics: Iterable[str], event: HubEvent) -> int:
        """Like `publish`, but a subscriber of several of `topics` gets the event once."""
        topics = tuple(topics)
        with self._lock:
            members = set()
            for topic in topics:
                members.update(self._subs.get(topic, ()))

        delivered = 0
        for sub in members:
            if sub.offer(event):
                delivered += 1
        if delivered < len(members):
            logger.debug(
                "Dropped hub event for slow subscribers",
                topics=list(topics),
                event_type=event.type,
                dropped=len(members) - delivered,
            )
        return delivered

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self._subs.get(topic, ()))

    def publish_user(self, user_id: int, event: HubEvent) -> int:
        return self.publish(topic_user(user_id), event)

    def publish_role(self, role: str, event: HubEvent) -> int:
        return self.publish(topic_role(role), event)

    def publish_orders(self, event: HubEvent) -> int:
        return self.publish(TOPIC_ORDERS, event)

    def publish_inventory(self, event: HubEvent) -> int:
        return self.publish(TOPIC_INVENTORY, event)

    def inventory_changed(self) -> int:
        """Tell every listener the catalog changed; clients refetch what they show."""
        return self.publish_inventory(HubEvent(type=INVENTORY_UPDATED, data={"ts": int(time.time())}))


hub = NotificationHub()


def get_hub() -> NotificationHub:
    return hub
