"""
Server-sent events endpoint.

Each connection subscribes to the hub for the topics the caller may see and
relays events as `event: <type>` / `data: <json>` frames until the client goes
away. A comment line is written every keepalive interval so proxies keep the
connection open.
"""

import asyncio
import json
import time
from typing import AsyncIterator, Awaitable, Callable, List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from core.auth import current_active_user
from core.config import settings
from core.hub import TOPIC_INVENTORY, TOPIC_ORDERS, NotificationHub, Subscription, SubscriptionClosed, get_hub, topic_role, topic_user
from core.logging import get_logger
from db.users import STAFF_ROLES, User

logger = get_logger(__name__)

router = APIRouter()

SUBSCRIBER_CAPACITY = 32
PING = ": ping\n\n"
# Upper bound on how long a vanished client keeps its subscription.
DISCONNECT_POLL_SECONDS = 1.0


def topics_for(user: User) -> List[str]:
    topics = [topic_user(user.id), TOPIC_INVENTORY]
    if user.role in STAFF_ROLES:
        topics += [TOPIC_ORDERS, topic_role(user.role)]
    return topics


def format_event(event_type: str, data) -> str:
    return f"event: {event_type}\ndata: {json.dumps(data, separators=(',', ':'))}\n\n"


async def event_stream(
    subscription: Subscription,
    is_disconnected: Callable[[], Awaitable[bool]],
    keepalive: float,
    on_close: Optional[Callable[[], None]] = None,
    poll: float = DISCONNECT_POLL_SECONDS,
) -> AsyncIterator[str]:
    # A single pending read survives across disconnect polls.
    next_event: Optional[asyncio.Future] = None
    step = min(poll, keepalive)
    idle = 0.0
    try:
        yield format_event("hello", {"ok": True, "ts": int(time.time())})
        while True:
            if await is_disconnected():
                return
            if next_event is None:
                next_event = asyncio.ensure_future(subscription.get())
            done, _ = await asyncio.wait({next_event}, timeout=step)
            if not done:
                idle += step
                if idle >= keepalive:
                    idle = 0.0
                    yield PING
                continue
            finished, next_event = next_event, None
            try:
                event = finished.result()
            except SubscriptionClosed:
                return
            yield format_event(event.type, event.data)
    finally:
        if next_event is not None:
            next_event.cancel()
        if on_close is not None:
            on_close()


@router.get("/stream")
async def stream_events(
    request: Request,
    hub: NotificationHub = Depends(get_hub),
    user: User = Depends(current_active_user),
):
    topics = topics_for(user)
    subscription, unsubscribe = hub.subscribe(topics, SUBSCRIBER_CAPACITY)
    logger.info("Event stream opened", user_id=user.id, topics=topics)

    def on_close():
        unsubscribe()
        logger.info("Event stream closed", user_id=user.id)

    return StreamingResponse(
        event_stream(subscription, request.is_disconnected, settings.sse_keepalive_seconds, on_close),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"},
    )
