from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_staff_user
from core.flash import FLASH_SUCCESS, add_flash
from core.logging import get_logger
from db import queries
from db.database import get_async_session
from db.users import User
from schemas.orders import QueueSummary
from schemas.users import UserRead

logger = get_logger(__name__)

router = APIRouter()


@router.post("/duty", response_model=UserRead)
async def toggle_duty(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_staff_user),
):
    """Flip the caller's on-duty flag"""
    staff = await db.get(User, user.id)
    staff.on_duty = not staff.on_duty
    await db.commit()
    await db.refresh(staff)

    logger.info("Duty changed", user_id=staff.id, on_duty=staff.on_duty)
    add_flash(request, response, FLASH_SUCCESS, "You are on duty." if staff.on_duty else "You are off duty.")
    return staff


@router.get("/summary", response_model=QueueSummary)
async def queue_summary(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_staff_user),
):
    counts = await queries.count_active_by_status(db)
    return QueueSummary(on_duty=bool(user.on_duty), counts=counts)
