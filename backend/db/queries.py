"""
Persistence helpers used by the routers and the order lifecycle.

None of these commit: the caller owns the transaction, so an order row and its
audit event always land (or roll back) together.
"""

from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, not_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.availability import IngredientAvailability, product_available_sql
from core.order_status import ACTIVE_STATUSES, TERMINAL_STATUSES, OrderStatus
from .cocktail import Cocktail
from .cocktail_ingredient import CocktailIngredient
from .database import utcnow
from .order import Order, OrderEvent
from .product import Product


def _order_options(with_events: bool = False):
    options = [
        selectinload(Order.user),
        selectinload(Order.cocktail),
        selectinload(Order.assigned_bartender),
    ]
    if with_events:
        options.append(selectinload(Order.events).selectinload(OrderEvent.changed_by))
    return options


def _cocktail_options():
    return [selectinload(Cocktail.ingredients).selectinload(CocktailIngredient.product)]


# ---------------- Products ----------------

async def get_product(db: AsyncSession, product_id: int) -> Optional[Product]:
    return await db.get(Product, product_id)


async def list_products(db: AsyncSession, search: str = "") -> List[Product]:
    stmt = select(Product).order_by(Product.category, Product.name)
    search = (search or "").strip().lower()
    if search:
        like = f"%{search}%"
        stmt = stmt.where(or_(func.lower(Product.name).like(like), func.lower(Product.category).like(like)))
    res = await db.execute(stmt)
    return list(res.scalars().all())


# ---------------- Cocktails ----------------

async def get_cocktail(db: AsyncSession, cocktail_id: int) -> Optional[Cocktail]:
    res = await db.execute(
        select(Cocktail)
        .options(*_cocktail_options())
        .where(Cocktail.id == cocktail_id)
        .execution_options(populate_existing=True)
    )
    return res.scalar_one_or_none()


async def get_cocktail_links(db: AsyncSession, cocktail_id: int) -> List[IngredientAvailability]:
    """Ingredient links of a cocktail with each product's availability as of now."""
    res = await db.execute(
        select(
            CocktailIngredient.product_id,
            Product.name,
            CocktailIngredient.required,
            product_available_sql(Product),
        )
        .join(Product, Product.id == CocktailIngredient.product_id)
        .where(CocktailIngredient.cocktail_id == cocktail_id)
        .order_by(CocktailIngredient.required.desc(), Product.category, Product.name)
    )
    return [
        IngredientAvailability(
            product_id=product_id,
            product_name=name,
            required=bool(required),
            available=bool(available),
        )
        for product_id, name, required, available in res.all()
    ]


async def list_cocktails(db: AsyncSession, only_available: bool = False) -> List[Cocktail]:
    stmt = select(Cocktail).options(*_cocktail_options()).order_by(Cocktail.name)
    if only_available:
        missing_required = (
            select(CocktailIngredient.id)
            .join(Product, Product.id == CocktailIngredient.product_id)
            .where(
                CocktailIngredient.cocktail_id == Cocktail.id,
                CocktailIngredient.required.is_(True),
                not_(product_available_sql(Product)),
            )
            .exists()
        )
        stmt = stmt.where(Cocktail.is_enabled.is_(True), ~missing_required)
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def replace_cocktail_ingredients(db: AsyncSession, cocktail: Cocktail, items: Iterable[dict]) -> None:
    """Swap the whole ingredient list; `cocktail.ingredients` must be loaded."""
    cocktail.ingredients.clear()
    await db.flush()
    for position, item in enumerate(items):
        cocktail.ingredients.append(
            CocktailIngredient(
                product_id=item["product_id"],
                quantity=item.get("quantity"),
                unit=(item.get("unit") or "").strip(),
                required=bool(item.get("required", True)),
                position=position,
            )
        )
    await db.flush()


# ---------------- Orders ----------------

async def get_order(db: AsyncSession, order_id: int, with_events: bool = False) -> Optional[Order]:
    res = await db.execute(
        select(Order)
        .options(*_order_options(with_events))
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    return res.scalar_one_or_none()


async def current_status(db: AsyncSession, order_id: int) -> Optional[str]:
    res = await db.execute(select(Order.status).where(Order.id == order_id))
    return res.scalar_one_or_none()


async def insert_order_with_event(
    db: AsyncSession,
    user_id: int,
    cocktail_id: int,
    quantity: int,
    notes: str,
    location: str,
) -> Order:
    now = utcnow()
    order = Order(
        user_id=user_id,
        cocktail_id=cocktail_id,
        quantity=quantity,
        notes=notes,
        location=location,
        status=OrderStatus.PLACED.value,
        assigned_bartender_id=None,
        created_at=now,
        updated_at=now,
    )
    db.add(order)
    await db.flush()  # Flush to get the ID

    db.add(
        OrderEvent(
            order_id=order.id,
            from_status="",
            to_status=OrderStatus.PLACED.value,
            changed_by_user_id=None,
            created_at=now,
        )
    )
    await db.flush()
    return order


async def set_assignee(db: AsyncSession, order_id: int, bartender_id: Optional[int], only_if_unassigned: bool = False) -> bool:
    stmt = update(Order).where(Order.id == order_id)
    if only_if_unassigned:
        stmt = stmt.where(Order.assigned_bartender_id.is_(None))
    res = await db.execute(
        stmt.values(assigned_bartender_id=bartender_id, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1


async def apply_transition(
    db: AsyncSession,
    order_id: int,
    from_status: str,
    to_status: str,
    changed_by: Optional[int],
) -> Optional[OrderEvent]:
    """Move the order from `from_status` to `to_status` and append the audit event.

    The status write only matches while the row still holds `from_status`, so a
    concurrent change makes this return None instead of writing.
    """
    now = utcnow()
    res = await db.execute(
        update(Order)
        .where(Order.id == order_id, Order.status == from_status)
        .values(status=to_status, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        return None

    event = OrderEvent(
        order_id=order_id,
        from_status=from_status,
        to_status=to_status,
        changed_by_user_id=changed_by,
        created_at=now,
    )
    db.add(event)
    await db.flush()
    return event


async def list_active_orders(db: AsyncSession) -> List[Order]:
    res = await db.execute(
        select(Order)
        .options(*_order_options())
        .where(Order.status.not_in([s.value for s in TERMINAL_STATUSES]))
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    return list(res.scalars().all())


async def list_orders_for_user(db: AsyncSession, user_id: int) -> List[Order]:
    res = await db.execute(
        select(Order)
        .options(*_order_options())
        .where(Order.user_id == user_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    return list(res.scalars().all())


async def list_order_events(db: AsyncSession, order_id: int) -> List[OrderEvent]:
    res = await db.execute(
        select(OrderEvent)
        .options(selectinload(OrderEvent.changed_by))
        .where(OrderEvent.order_id == order_id)
        .order_by(OrderEvent.created_at.asc(), OrderEvent.id.asc())
    )
    return list(res.scalars().all())


async def count_active_by_status(db: AsyncSession) -> Dict[str, int]:
    res = await db.execute(
        select(Order.status, func.count(Order.id))
        .where(Order.status.in_([s.value for s in ACTIVE_STATUSES]))
        .group_by(Order.status)
    )
    counts = {s.value: 0 for s in OrderStatus if s in ACTIVE_STATUSES}
    for status_value, n in res.all():
        counts[status_value] = int(n)
    return counts
