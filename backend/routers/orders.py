from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from core.auth import current_active_user, current_staff_user
from core.errors import LifecycleError
from core.flash import FLASH_SUCCESS, add_flash
from core.lifecycle import OrderLifecycle, get_order_lifecycle
from core.logging import get_logger
from db import queries
from db.database import get_async_session
from db.order import Order as OrderModel, OrderEvent as OrderEventModel
from db.users import STAFF_ROLES, User
from routers.responses import lifecycle_error_response
from schemas.orders import OrderAssign, OrderCreate, OrderEventRead, OrderRead, OrderStatusUpdate

logger = get_logger(__name__)

router = APIRouter()


def _serialize_event(ev: OrderEventModel) -> OrderEventRead:
    changed_by = getattr(ev, "changed_by", None)
    return OrderEventRead(
        id=ev.id,
        from_status=ev.from_status or "",
        to_status=ev.to_status,
        changed_by_user_id=ev.changed_by_user_id,
        changed_by_name=getattr(changed_by, "display_name", None) if changed_by else None,
        created_at=ev.created_at,
    )


def _serialize_order(o: OrderModel, with_events: bool = False) -> OrderRead:
    owner = getattr(o, "user", None)
    cocktail = getattr(o, "cocktail", None)
    bartender = getattr(o, "assigned_bartender", None)
    return OrderRead(
        id=o.id,
        user_id=o.user_id,
        user_display_name=getattr(owner, "display_name", None) if owner else None,
        cocktail_id=o.cocktail_id,
        cocktail_name=getattr(cocktail, "name", None) if cocktail else None,
        quantity=o.quantity,
        notes=o.notes or "",
        location=o.location or "",
        status=o.status,
        assigned_bartender_id=o.assigned_bartender_id,
        assigned_bartender_name=getattr(bartender, "display_name", None) if bartender else None,
        created_at=o.created_at,
        updated_at=o.updated_at,
        events=[_serialize_event(ev) for ev in o.events] if with_events else None,
    )


@router.post("/", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
async def place_order(
    body: OrderCreate,
    request: Request,
    response: Response,
    lifecycle: OrderLifecycle = Depends(get_order_lifecycle),
    user: User = Depends(current_active_user),
):
    try:
        order = await lifecycle.create(
            user_id=user.id,
            cocktail_id=body.cocktail_id,
            quantity=body.quantity,
            notes=body.notes,
            location=body.location,
        )
    except LifecycleError as e:
        return lifecycle_error_response(request, e)

    add_flash(request, response, FLASH_SUCCESS, "Order placed.")
    return _serialize_order(order)


@router.get("/mine", response_model=List[OrderRead])
async def my_orders(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    orders = await queries.list_orders_for_user(db, user.id)
    return [_serialize_order(o) for o in orders]


@router.get("/queue", response_model=List[OrderRead])
async def order_queue(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_staff_user),
):
    """Every order that is not delivered or cancelled yet, newest first"""
    orders = await queries.list_active_orders(db)
    return [_serialize_order(o) for o in orders]


@router.get("/{order_id}", response_model=OrderRead)
async def get_order(
    order_id: int,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    order = await queries.get_order(db, order_id, with_events=True)
    # Other patrons' orders read as missing
    if not order or (order.user_id != user.id and user.role not in STAFF_ROLES):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return _serialize_order(order, with_events=True)


@router.post("/{order_id}/accept", response_model=OrderRead)
async def accept_order(
    order_id: int,
    request: Request,
    lifecycle: OrderLifecycle = Depends(get_order_lifecycle),
    user: User = Depends(current_staff_user),
):
    try:
        order = await lifecycle.accept(order_id, user.id)
    except LifecycleError as e:
        return lifecycle_error_response(request, e)
    return _serialize_order(order)


@router.post("/{order_id}/status", response_model=OrderRead)
async def change_status(
    order_id: int,
    body: OrderStatusUpdate,
    request: Request,
    lifecycle: OrderLifecycle = Depends(get_order_lifecycle),
    user: User = Depends(current_staff_user),
):
    try:
        order = await lifecycle.transition(order_id, body.to_status, user.id)
    except LifecycleError as e:
        return lifecycle_error_response(request, e)
    return _serialize_order(order)


@router.post("/{order_id}/assign", response_model=OrderRead)
async def assign_order(
    order_id: int,
    body: OrderAssign,
    request: Request,
    db: AsyncSession = Depends(get_async_session),
    lifecycle: OrderLifecycle = Depends(get_order_lifecycle),
    user: User = Depends(current_staff_user),
):
    if body.unassign:
        bartender_id = None
    elif body.bartender_id is None:
        bartender_id = user.id
    else:
        bartender = await db.get(User, body.bartender_id)
        if not bartender or bartender.role not in STAFF_ROLES:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Assignee must be a bartender or admin")
        bartender_id = bartender.id

    try:
        order = await lifecycle.assign(order_id, bartender_id)
    except LifecycleError as e:
        return lifecycle_error_response(request, e)
    return _serialize_order(order)


@router.post("/{order_id}/cancel", response_model=OrderRead)
async def cancel_order(
    order_id: int,
    request: Request,
    lifecycle: OrderLifecycle = Depends(get_order_lifecycle),
    user: User = Depends(current_staff_user),
):
    """Cancel an order; delivered or already cancelled orders are returned unchanged"""
    try:
        order = await lifecycle.cancel(order_id, user.id)
    except LifecycleError as e:
        return lifecycle_error_response(request, e)
    return _serialize_order(order)
