import asyncio
import sys
from pathlib import Path

"""
Seed a demo bar catalog (products, cocktails, recipes) into the database.

Safe to re-run: products and cocktails are matched by name and their metadata
refreshed; a cocktail's ingredient list is only written while it has none, so
edits made by bartenders survive.

This script can be run from either:
- backend/: `python scripts/seed_demo_bar.py`
- repo root: `python backend/scripts/seed_demo_bar.py`
"""

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import func, select

from db.cocktail import Cocktail
from db.cocktail_ingredient import CocktailIngredient
from db.database import async_session_maker, create_db_and_tables
from db.product import Product


PRODUCTS = [
    {"name": "Ice", "category": "Basics", "notes": "Cubes"},
    {"name": "Lime", "category": "Fruit"},
    {"name": "Mint", "category": "Herbs"},
    {"name": "Sugar Syrup", "category": "Sweeteners", "notes": "Simple syrup"},
    {"name": "Soda Water", "category": "Mixers"},
    {"name": "Tonic Water", "category": "Mixers"},
    {"name": "Ginger Beer", "category": "Mixers"},
    {"name": "Cola", "category": "Soft Drinks"},
    {"name": "Orange Juice", "category": "Juice"},
    {"name": "Gin", "category": "Spirits", "abv_percent": 40},
    {"name": "Vodka", "category": "Spirits", "abv_percent": 40},
    {"name": "White Rum", "category": "Spirits", "abv_percent": 40},
    {"name": "Tequila", "category": "Spirits", "abv_percent": 40},
    {"name": "Triple Sec", "category": "Liqueurs", "abv_percent": 30},
]

COCKTAILS = [
    {
        "name": "Gin & Tonic",
        "description": "Crisp and bitter-sweet.",
        "tags": "alcoholic,classic,refreshing",
        "difficulty": "easy",
        "prep_time_minutes": 2,
        "instructions": "Fill a glass with ice.\nAdd gin.\nTop with tonic water.\nGarnish with lime.",
        "ingredients": [
            ("Gin", 50, "ml", True),
            ("Tonic Water", 150, "ml", True),
            ("Lime", 1, "pc", False),
            ("Ice", 8, "pc", False),
        ],
    },
    {
        "name": "Mojito",
        "description": "Mint, lime and rum, bright and refreshing.",
        "tags": "alcoholic,classic,mint,citrus",
        "difficulty": "medium",
        "prep_time_minutes": 5,
        "instructions": "Muddle mint with sugar syrup and lime.\nAdd rum and ice.\nTop with soda water.",
        "ingredients": [
            ("White Rum", 50, "ml", True),
            ("Lime", 1, "pc", True),
            ("Mint", 8, "leaves", True),
            ("Sugar Syrup", 30, "ml", True),
            ("Soda Water", 90, "ml", True),
            ("Ice", 8, "pc", False),
        ],
    },
    {
        "name": "Margarita",
        "description": "Tequila, triple sec and lime.",
        "tags": "alcoholic,sour,classic",
        "difficulty": "medium",
        "prep_time_minutes": 4,
        "instructions": "Add tequila, triple sec and lime to a glass with ice.\nStir or shake.\nServe cold.",
        "ingredients": [
            ("Tequila", 50, "ml", True),
            ("Triple Sec", 30, "ml", True),
            ("Lime", 1, "pc", True),
            ("Ice", 8, "pc", False),
        ],
    },
    {
        "name": "Moscow Mule",
        "description": "Vodka and ginger beer with lime.",
        "tags": "alcoholic,ginger,refreshing",
        "difficulty": "easy",
        "prep_time_minutes": 3,
        "instructions": "Fill a glass with ice.\nAdd vodka.\nTop with ginger beer.\nSqueeze lime and stir.",
        "ingredients": [
            ("Vodka", 50, "ml", True),
            ("Ginger Beer", 150, "ml", True),
            ("Lime", 1, "pc", True),
            ("Ice", 8, "pc", False),
        ],
    },
    {
        "name": "Cuba Libre",
        "description": "Rum and cola with lime.",
        "tags": "alcoholic,rum,cola",
        "difficulty": "easy",
        "prep_time_minutes": 2,
        "instructions": "Fill glass with ice.\nAdd rum.\nTop with cola.\nAdd lime.",
        "ingredients": [
            ("White Rum", 50, "ml", True),
            ("Cola", 150, "ml", True),
            ("Lime", 1, "pc", False),
        ],
    },
    {
        "name": "Virgin Mojito",
        "description": "Mint, lime and soda, no alcohol.",
        "tags": "non-alcoholic,mint,citrus",
        "difficulty": "easy",
        "prep_time_minutes": 4,
        "instructions": "Muddle mint with sugar syrup and lime.\nAdd ice.\nTop with soda water.",
        "ingredients": [
            ("Lime", 1, "pc", True),
            ("Mint", 8, "leaves", True),
            ("Sugar Syrup", 30, "ml", True),
            ("Soda Water", 150, "ml", True),
        ],
    },
    {
        "name": "Orange Spritzer",
        "description": "Orange juice topped with soda.",
        "tags": "non-alcoholic,citrus",
        "difficulty": "easy",
        "prep_time_minutes": 2,
        "instructions": "Ice.\nAdd orange juice.\nTop with soda water.",
        "ingredients": [
            ("Orange Juice", 120, "ml", True),
            ("Soda Water", 60, "ml", True),
            ("Ice", 8, "pc", False),
        ],
    },
]


async def upsert_product(session, data: dict) -> Product:
    result = await session.execute(
        select(Product).where(func.lower(Product.name) == data["name"].lower())
    )
    product = result.scalar_one_or_none()
    if not product:
        product = Product(name=data["name"], is_available=True)
        session.add(product)

    product.category = data["category"]
    product.abv_percent = data.get("abv_percent", 0)
    product.notes = data.get("notes", "")
    await session.flush()
    return product


async def upsert_cocktail(session, data: dict, products: dict) -> Cocktail:
    result = await session.execute(
        select(Cocktail).where(func.lower(Cocktail.name) == data["name"].lower())
    )
    cocktail = result.scalar_one_or_none()
    if not cocktail:
        cocktail = Cocktail(name=data["name"], is_enabled=True)
        session.add(cocktail)

    for field in ("description", "tags", "difficulty", "prep_time_minutes", "instructions"):
        setattr(cocktail, field, data[field])
    await session.flush()

    # Keep recipes bartenders have already edited
    has_ingredients = await session.execute(
        select(func.count(CocktailIngredient.id)).where(CocktailIngredient.cocktail_id == cocktail.id)
    )
    if has_ingredients.scalar_one() == 0:
        for position, (product_name, quantity, unit, required) in enumerate(data["ingredients"]):
            session.add(
                CocktailIngredient(
                    cocktail_id=cocktail.id,
                    product_id=products[product_name].id,
                    quantity=quantity,
                    unit=unit,
                    required=required,
                    position=position,
                )
            )
        await session.flush()
    return cocktail


async def seed_catalog(session) -> None:
    products = {}
    for data in PRODUCTS:
        products[data["name"]] = await upsert_product(session, data)
    for data in COCKTAILS:
        await upsert_cocktail(session, data, products)


async def seed():
    await create_db_and_tables()
    async with async_session_maker() as session:
        async with session.begin():
            await seed_catalog(session)
    print(f"Seeded {len(PRODUCTS)} products and {len(COCKTAILS)} cocktails")


if __name__ == "__main__":
    asyncio.run(seed())
