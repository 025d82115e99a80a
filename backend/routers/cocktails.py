from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, List, Literal, Optional

from core.auth import current_active_user, current_staff_user
from core.hub import NotificationHub, get_hub
from core.logging import get_logger
from core.menu import ALCOHOL_ALL, filter_menu
from db import queries
from db.cocktail import Cocktail as CocktailModel
from db.database import get_async_session
from db.order import Order as OrderModel
from db.product import Product as ProductModel
from db.users import User
from schemas.cocktails import (
    CocktailCreate,
    CocktailEnabledUpdate,
    CocktailIngredientInput,
    CocktailIngredientsUpdate,
    CocktailUpdate,
)

logger = get_logger(__name__)

router = APIRouter()


async def _get_cocktail_or_404(db: AsyncSession, cocktail_id: int, user: User) -> CocktailModel:
    cocktail = await queries.get_cocktail(db, cocktail_id)
    # Patrons never see cocktails taken off the menu
    if not cocktail or (not cocktail.is_enabled and not user.is_staff):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Cocktail with id {cocktail_id} not found"
        )
    return cocktail


async def _check_products_exist(db: AsyncSession, items: List[CocktailIngredientInput]) -> None:
    wanted = {item.product_id for item in items}
    if not wanted:
        return
    result = await db.execute(select(ProductModel.id).where(ProductModel.id.in_(wanted)))
    missing = wanted - set(result.scalars().all())
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown product id(s): {', '.join(str(i) for i in sorted(missing))}"
        )


def _ingredient_rows(items: List[CocktailIngredientInput]) -> List[Dict]:
    return [item.model_dump() for item in items]


async def _name_taken(db: AsyncSession, name: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(CocktailModel.id).where(func.lower(CocktailModel.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(CocktailModel.id != exclude_id)
    existing = await db.execute(stmt)
    return existing.first() is not None


@router.get("/", response_model=List[Dict])
async def get_cocktails(
    only_available: bool = Query(False),
    alc: Literal["all", "alcohol", "non"] = Query(ALCOHOL_ALL),
    tag: str = Query(""),
    include: str = Query("", description="Only drinks with an ingredient whose name contains this"),
    exclude: str = Query("", description="Drop drinks with an ingredient whose name contains this"),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """Get the cocktail menu, optionally only what can be made right now"""
    cocktails = await queries.list_cocktails(db, only_available=only_available)
    if not user.is_staff:
        cocktails = [c for c in cocktails if c.is_enabled]
    cocktails = filter_menu(cocktails, alc=alc, tag=tag, include=include, exclude=exclude)
    return [c.to_schema for c in cocktails]


@router.get("/{cocktail_id}", response_model=Dict)
async def get_cocktail(
    cocktail_id: int,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    cocktail = await _get_cocktail_or_404(db, cocktail_id, user)
    return cocktail.to_schema


@router.post("/", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_cocktail(
    cocktail: CocktailCreate,
    db: AsyncSession = Depends(get_async_session),
    hub: NotificationHub = Depends(get_hub),
    user: User = Depends(current_staff_user),
):
    """Create a new cocktail with its ingredient list"""
    if await _name_taken(db, cocktail.name):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A cocktail with this name already exists")
    await _check_products_exist(db, cocktail.ingredients)

    try:
        cocktail_model = CocktailModel(
            name=cocktail.name,
            description=cocktail.description.strip(),
            tags=",".join(t.strip() for t in cocktail.tags if t.strip()),
            difficulty=cocktail.difficulty.strip() or "easy",
            prep_time_minutes=cocktail.prep_time_minutes,
            instructions=cocktail.instructions.strip(),
            is_enabled=cocktail.is_enabled,
            ingredients=[],
        )
        db.add(cocktail_model)
        await db.flush()  # Flush to get the ID

        await queries.replace_cocktail_ingredients(db, cocktail_model, _ingredient_rows(cocktail.ingredients))
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Error creating cocktail", name=cocktail.name)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error creating cocktail"
        )

    # Reload the model with relationships
    cocktail_model = await queries.get_cocktail(db, cocktail_model.id)
    hub.inventory_changed()
    return cocktail_model.to_schema


@router.patch("/{cocktail_id}", response_model=Dict)
async def update_cocktail(
    cocktail_id: int,
    body: CocktailUpdate,
    db: AsyncSession = Depends(get_async_session),
    hub: NotificationHub = Depends(get_hub),
    user: User = Depends(current_staff_user),
):
    """Edit name, description, tags, difficulty, prep time, instructions or the enabled flag"""
    cocktail_model = await _get_cocktail_or_404(db, cocktail_id, user)
    changes = body.model_dump(exclude_unset=True, exclude_none=True)

    if "name" in changes and await _name_taken(db, changes["name"], exclude_id=cocktail_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A cocktail with this name already exists")
    if "tags" in changes:
        changes["tags"] = ",".join(t.strip() for t in changes["tags"] if t.strip())
    for field in ("description", "instructions"):
        if field in changes:
            changes[field] = changes[field].strip()
    if "difficulty" in changes:
        changes["difficulty"] = changes["difficulty"].strip() or "easy"

    try:
        for field, value in changes.items():
            setattr(cocktail_model, field, value)
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Error updating cocktail", cocktail_id=cocktail_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error updating cocktail"
        )

    logger.info("Cocktail updated", cocktail_id=cocktail_id, fields=sorted(changes))
    cocktail_model = await queries.get_cocktail(db, cocktail_id)
    hub.inventory_changed()
    return cocktail_model.to_schema


@router.put("/{cocktail_id}/ingredients", response_model=Dict)
async def replace_ingredients(
    cocktail_id: int,
    body: CocktailIngredientsUpdate,
    db: AsyncSession = Depends(get_async_session),
    hub: NotificationHub = Depends(get_hub),
    user: User = Depends(current_staff_user),
):
    """Replace the whole ingredient list of a cocktail"""
    cocktail_model = await _get_cocktail_or_404(db, cocktail_id, user)
    await _check_products_exist(db, body.ingredients)

    try:
        await queries.replace_cocktail_ingredients(db, cocktail_model, _ingredient_rows(body.ingredients))
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Error updating cocktail ingredients", cocktail_id=cocktail_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error updating cocktail"
        )

    cocktail_model = await queries.get_cocktail(db, cocktail_id)
    hub.inventory_changed()
    return cocktail_model.to_schema


@router.patch("/{cocktail_id}/enabled", response_model=Dict)
async def set_enabled(
    cocktail_id: int,
    body: CocktailEnabledUpdate,
    db: AsyncSession = Depends(get_async_session),
    hub: NotificationHub = Depends(get_hub),
    user: User = Depends(current_staff_user),
):
    cocktail_model = await _get_cocktail_or_404(db, cocktail_id, user)
    cocktail_model.is_enabled = body.is_enabled
    await db.commit()

    logger.info("Cocktail enabled flag changed", cocktail_id=cocktail_id, is_enabled=body.is_enabled)
    cocktail_model = await queries.get_cocktail(db, cocktail_id)
    hub.inventory_changed()
    return cocktail_model.to_schema


@router.delete("/{cocktail_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_cocktail(
    cocktail_id: int,
    db: AsyncSession = Depends(get_async_session),
    hub: NotificationHub = Depends(get_hub),
    user: User = Depends(current_staff_user),
):
    cocktail_model = await _get_cocktail_or_404(db, cocktail_id, user)

    ordered = await db.execute(select(func.count(OrderModel.id)).where(OrderModel.cocktail_id == cocktail_id))
    if ordered.scalar_one() > 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cocktail has orders; disable it instead"
        )

    try:
        await db.delete(cocktail_model)
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Error deleting cocktail", cocktail_id=cocktail_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error deleting cocktail"
        )

    hub.inventory_changed()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
