"""
Order lifecycle: creation, status transitions, assignment, cancellation.

Each mutation runs in its own transaction and publishes to the notification hub
only after that transaction has committed, so a subscriber never hears about a
state that other readers cannot see yet.
"""

from typing import List, Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.availability import cocktail_available, missing_required
from core.errors import InvalidTransition, NotFound, ValidationError
from core.hub import (
    ORDER_CREATED,
    ORDER_UPDATED,
    TOPIC_ORDERS,
    HubEvent,
    NotificationHub,
    get_hub,
    topic_role,
    topic_user,
)
from core.logging import get_logger
from core.order_status import OrderStatus, is_allowed, parse_status
from db import queries
from db.database import get_session_maker
from db.order import Order, OrderEvent
from db.users import ROLE_ADMIN, ROLE_BARTENDER

logger = get_logger(__name__)

MIN_QUANTITY = 1
MAX_QUANTITY = 10

NOTIFIED_ROLES = (ROLE_BARTENDER, ROLE_ADMIN)


class OrderLifecycle:
    def __init__(self, session_maker: async_sessionmaker, hub: NotificationHub):
        self.session_maker = session_maker
        self.hub = hub

    async def create(
        self,
        user_id: int,
        cocktail_id: int,
        quantity: int,
        notes: str = "",
        location: str = "",
    ) -> Order:
        notes = (notes or "").strip()
        location = (location or "").strip()

        if not isinstance(quantity, int) or isinstance(quantity, bool) or not MIN_QUANTITY <= quantity <= MAX_QUANTITY:
            raise ValidationError(f"Quantity must be between {MIN_QUANTITY} and {MAX_QUANTITY}.")
        if not location:
            raise ValidationError("Location is required.")

        async with self.session_maker() as db:
            async with db.begin():
                cocktail = await queries.get_cocktail(db, cocktail_id)
                if cocktail is None or not cocktail.is_enabled:
                    raise ValidationError("Cocktail not available.")
                links = await queries.get_cocktail_links(db, cocktail_id)
                if not cocktail_available(cocktail.is_enabled, links):
                    names = ", ".join(link.product_name for link in missing_required(links))
                    raise ValidationError(f"Cocktail not available (missing ingredients: {names}).")

                order = await queries.insert_order_with_event(
                    db,
                    user_id=user_id,
                    cocktail_id=cocktail_id,
                    quantity=quantity,
                    notes=notes,
                    location=location,
                )
                order_id = order.id

            order = await queries.get_order(db, order_id)

        logger.info("Order placed", order_id=order_id, user_id=user_id, cocktail_id=cocktail_id)
        self._publish_created(order)
        return order

    async def transition(self, order_id: int, to_status, actor_id: Optional[int]) -> Order:
        try:
            target = parse_status(to_status)
        except ValueError:
            raise InvalidTransition("", str(to_status))

        async with self.session_maker() as db:
            async with db.begin():
                order = await queries.get_order(db, order_id)
                if order is None:
                    raise NotFound(f"Order {order_id} not found")
                current = order.status
                if not is_allowed(current, target):
                    raise InvalidTransition(current, target.value)

                # First touch claims the order.
                if order.assigned_bartender_id is None and actor_id is not None:
                    await queries.set_assignee(db, order_id, actor_id, only_if_unassigned=True)

                event = await queries.apply_transition(db, order_id, current, target.value, actor_id)
                if event is None:
                    # Someone else moved the order since we read it.
                    latest = await queries.current_status(db, order_id)
                    raise InvalidTransition(latest or current, target.value)

            order = await queries.get_order(db, order_id)

        logger.info(
            "Order status changed",
            order_id=order_id,
            from_status=current,
            to_status=target.value,
            actor_id=actor_id,
        )
        self._publish_updated(order)
        return order

    async def accept(self, order_id: int, actor_id: Optional[int]) -> Order:
        return await self.transition(order_id, OrderStatus.ACCEPTED, actor_id)

    async def cancel(self, order_id: int, actor_id: Optional[int]) -> Order:
        """Cancel unless the order already reached a terminal status (then no-op)."""
        async with self.session_maker() as db:
            order = await queries.get_order(db, order_id)
        if order is None:
            raise NotFound(f"Order {order_id} not found")
        if order.status in (OrderStatus.DELIVERED.value, OrderStatus.CANCELLED.value):
            return order
        try:
            return await self.transition(order_id, OrderStatus.CANCELLED, actor_id)
        except InvalidTransition as e:
            if e.from_status in (OrderStatus.DELIVERED.value, OrderStatus.CANCELLED.value):
                async with self.session_maker() as db:
                    return await queries.get_order(db, order_id)
            raise

    async def assign(self, order_id: int, bartender_id: Optional[int]) -> Order:
        async with self.session_maker() as db:
            async with db.begin():
                if not await queries.set_assignee(db, order_id, bartender_id):
                    raise NotFound(f"Order {order_id} not found")
            order = await queries.get_order(db, order_id)

        logger.info("Order assigned", order_id=order_id, bartender_id=bartender_id)
        self._publish_updated(order)
        return order

    async def history(self, order_id: int) -> List[OrderEvent]:
        async with self.session_maker() as db:
            if await queries.current_status(db, order_id) is None:
                raise NotFound(f"Order {order_id} not found")
            return await queries.list_order_events(db, order_id)

    def _publish_created(self, order: Order) -> None:
        event = HubEvent(type=ORDER_CREATED, data={"order_id": order.id})
        topics = [topic_role(role) for role in NOTIFIED_ROLES] + [TOPIC_ORDERS]
        self.hub.publish_many(topics, event)

    def _publish_updated(self, order: Order) -> None:
        event = HubEvent(type=ORDER_UPDATED, data={"order_id": order.id, "status": order.status})
        topics = [topic_user(order.user_id)] + [topic_role(role) for role in NOTIFIED_ROLES] + [TOPIC_ORDERS]
        self.hub.publish_many(topics, event)


def get_order_lifecycle(
    session_maker: async_sessionmaker = Depends(get_session_maker),
    hub: NotificationHub = Depends(get_hub),
) -> OrderLifecycle:
    return OrderLifecycle(session_maker, hub)
