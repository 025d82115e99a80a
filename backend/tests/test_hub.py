import asyncio
import time

import pytest

from core.hub import (
    INVENTORY_UPDATED,
    TOPIC_INVENTORY,
    TOPIC_ORDERS,
    HubEvent,
    NotificationHub,
    SubscriptionClosed,
    topic_role,
    topic_user,
)
from tests.helpers import run


def test_published_event_reaches_subscriber(hub: NotificationHub) -> None:
    sub, _ = hub.subscribe([topic_user(1)])
    delivered = hub.publish(topic_user(1), HubEvent("order:updated", {"order_id": 3}))

    assert delivered == 1
    assert sub.get_nowait() == HubEvent("order:updated", {"order_id": 3})
    assert sub.get_nowait() is None


def test_publish_without_subscribers_is_a_noop(hub: NotificationHub) -> None:
    assert hub.publish(TOPIC_ORDERS, HubEvent("order:created", {})) == 0


def test_topics_are_isolated(hub: NotificationHub) -> None:
    sub, _ = hub.subscribe([topic_user(1)])
    hub.publish(topic_user(2), HubEvent("order:updated", {}))
    assert sub.get_nowait() is None


def test_unsubscribe_stops_delivery_and_prunes_topic(hub: NotificationHub) -> None:
    sub, unsubscribe = hub.subscribe([topic_role("BARTENDER"), TOPIC_ORDERS])
    assert hub.subscriber_count(TOPIC_ORDERS) == 1

    unsubscribe()
    unsubscribe()  # second call is harmless

    assert hub.subscriber_count(TOPIC_ORDERS) == 0
    assert hub.subscriber_count(topic_role("BARTENDER")) == 0
    assert hub.publish(TOPIC_ORDERS, HubEvent("order:created", {})) == 0
    assert sub.closed
    with pytest.raises(SubscriptionClosed):
        sub.get_nowait()


def test_full_queue_drops_for_slow_subscriber_only(hub: NotificationHub) -> None:
    slow, _ = hub.subscribe([TOPIC_ORDERS], capacity=2)
    fast, _ = hub.subscribe([TOPIC_ORDERS], capacity=10)

    started = time.monotonic()
    results = [hub.publish(TOPIC_ORDERS, HubEvent("order:created", {"order_id": i})) for i in range(5)]
    assert time.monotonic() - started < 1.0

    assert results == [2, 2, 1, 1, 1]
    assert [slow.get_nowait().data["order_id"] for _ in range(2)] == [0, 1]
    assert slow.get_nowait() is None
    assert [fast.get_nowait().data["order_id"] for _ in range(5)] == [0, 1, 2, 3, 4]


def test_publish_many_delivers_once_per_subscriber(hub: NotificationHub) -> None:
    staff, _ = hub.subscribe([topic_role("ADMIN"), TOPIC_ORDERS])
    event = HubEvent("order:created", {"order_id": 1})

    assert hub.publish_many([topic_role("BARTENDER"), topic_role("ADMIN"), TOPIC_ORDERS], event) == 1
    assert staff.get_nowait() == event
    assert staff.get_nowait() is None


def test_inventory_changed_carries_timestamp(hub: NotificationHub) -> None:
    sub, _ = hub.subscribe([TOPIC_INVENTORY])
    hub.inventory_changed()

    event = sub.get_nowait()
    assert event.type == INVENTORY_UPDATED
    assert abs(event.data["ts"] - time.time()) < 5


def test_closing_releases_blocked_reader(hub: NotificationHub) -> None:
    async def scenario():
        sub, unsubscribe = hub.subscribe([TOPIC_ORDERS])
        reader = asyncio.ensure_future(sub.get())
        await asyncio.sleep(0)
        unsubscribe()
        with pytest.raises(SubscriptionClosed):
            await asyncio.wait_for(reader, timeout=1)

    run(scenario())


def test_async_iteration_ends_on_close(hub: NotificationHub) -> None:
    async def scenario():
        sub, unsubscribe = hub.subscribe([TOPIC_ORDERS])
        hub.publish(TOPIC_ORDERS, HubEvent("a", 1))
        hub.publish(TOPIC_ORDERS, HubEvent("b", 2))
        seen = []
        async for event in sub:
            seen.append(event.type)
            if len(seen) == 2:
                unsubscribe()
        return seen

    assert run(scenario()) == ["a", "b"]


def test_convenience_publishers_target_their_topic(hub: NotificationHub) -> None:
    user_sub, _ = hub.subscribe([topic_user(4)])
    role_sub, _ = hub.subscribe([topic_role("BARTENDER")])
    orders_sub, _ = hub.subscribe([TOPIC_ORDERS])

    assert hub.publish_user(4, HubEvent("u", 1)) == 1
    assert hub.publish_role("BARTENDER", HubEvent("r", 2)) == 1
    assert hub.publish_orders(HubEvent("o", 3)) == 1
    assert hub.publish_inventory(HubEvent("i", 4)) == 0

    assert [s.get_nowait().type for s in (user_sub, role_sub, orders_sub)] == ["u", "r", "o"]
