from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from core.auth import current_active_user, current_staff_user
from core.flash import FLASH_SUCCESS, add_flash
from core.hub import NotificationHub, get_hub
from core.logging import get_logger
from db import queries
from db.cocktail_ingredient import CocktailIngredient
from db.database import get_async_session
from db.product import Product
from db.users import User
from schemas.products import ProductAvailabilityUpdate, ProductCreate, ProductRead, ProductStockUpdate

logger = get_logger(__name__)

router = APIRouter()


async def _get_product_or_404(db: AsyncSession, product_id: int) -> Product:
    product = await queries.get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


@router.get("/", response_model=List[ProductRead])
async def list_products(
    search: str = Query(""),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    products = await queries.list_products(db, search)
    return [p.to_schema for p in products]


@router.post("/", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
async def create_product(
    body: ProductCreate,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_async_session),
    hub: NotificationHub = Depends(get_hub),
    user: User = Depends(current_staff_user),
):
    existing = await db.execute(select(Product.id).where(func.lower(Product.name) == body.name.lower()))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A product with this name already exists")

    try:
        product = Product(
            name=body.name,
            category=body.category,
            abv_percent=body.abv_percent,
            allergen_flags=body.allergen_flags.strip(),
            notes=body.notes.strip(),
            is_available=body.is_available,
            stock_count=body.stock_count,
        )
        db.add(product)
        await db.commit()
        await db.refresh(product)
    except Exception:
        await db.rollback()
        logger.exception("Error creating product", name=body.name)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error creating product")

    hub.inventory_changed()
    add_flash(request, response, FLASH_SUCCESS, "Product created.")
    return product.to_schema


@router.patch("/{product_id}/availability", response_model=ProductRead)
async def set_product_availability(
    product_id: int,
    body: ProductAvailabilityUpdate,
    db: AsyncSession = Depends(get_async_session),
    hub: NotificationHub = Depends(get_hub),
    user: User = Depends(current_staff_user),
):
    product = await _get_product_or_404(db, product_id)
    product.is_available = body.is_available
    await db.commit()
    await db.refresh(product)

    logger.info("Product availability changed", product_id=product_id, is_available=body.is_available)
    hub.inventory_changed()
    return product.to_schema


@router.patch("/{product_id}/stock", response_model=ProductRead)
async def set_product_stock(
    product_id: int,
    body: ProductStockUpdate,
    db: AsyncSession = Depends(get_async_session),
    hub: NotificationHub = Depends(get_hub),
    user: User = Depends(current_staff_user),
):
    product = await _get_product_or_404(db, product_id)
    product.stock_count = body.stock_count
    await db.commit()
    await db.refresh(product)

    logger.info("Product stock changed", product_id=product_id, stock_count=body.stock_count)
    hub.inventory_changed()
    return product.to_schema


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: int,
    db: AsyncSession = Depends(get_async_session),
    hub: NotificationHub = Depends(get_hub),
    user: User = Depends(current_staff_user),
):
    product = await _get_product_or_404(db, product_id)

    in_use = await db.execute(
        select(func.count(CocktailIngredient.id)).where(CocktailIngredient.product_id == product_id)
    )
    if in_use.scalar_one() > 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Product is used by a cocktail; remove it from the recipe first",
        )

    await db.delete(product)
    await db.commit()
    hub.inventory_changed()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
