"""Shared test helpers: an in-memory database seeded with a tiny bar."""

import asyncio
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from db.cocktail import Cocktail
from db.cocktail_ingredient import CocktailIngredient
from db.database import create_db_and_tables, enable_sqlite_foreign_keys
from db.product import Product
from db.users import ROLE_ADMIN, ROLE_BARTENDER, ROLE_USER, User


def run(coro):
    return asyncio.run(coro)


def make_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    return engine


@dataclass
class Seed:
    patron_id: int
    other_patron_id: int
    bartender_id: int
    admin_id: int
    gin_id: int
    tonic_id: int
    lime_id: int
    gin_tonic_id: int


async def seed_bar(session_maker) -> Seed:
    """Three users, three products and one Gin & Tonic (lime optional)."""
    async with session_maker() as db:
        users = [
            User(email="pat@example.com", hashed_password="x", role=ROLE_USER, display_name="Pat"),
            User(email="sam@example.com", hashed_password="x", role=ROLE_USER, display_name="Sam"),
            User(email="bart@example.com", hashed_password="x", role=ROLE_BARTENDER, display_name="Bart"),
            User(email="ada@example.com", hashed_password="x", role=ROLE_ADMIN, display_name="Ada"),
        ]
        gin = Product(name="Gin", category="spirit", is_available=True)
        tonic = Product(name="Tonic", category="mixer", is_available=True, stock_count=3)
        lime = Product(name="Lime", category="garnish", is_available=False)
        db.add_all(users + [gin, tonic, lime])
        await db.flush()

        gin_tonic = Cocktail(
            name="Gin & Tonic",
            ingredients=[
                CocktailIngredient(product_id=gin.id, quantity=50, unit="ml", required=True, position=0),
                CocktailIngredient(product_id=tonic.id, quantity=150, unit="ml", required=True, position=1),
                CocktailIngredient(product_id=lime.id, quantity=1, unit="wedge", required=False, position=2),
            ],
        )
        db.add(gin_tonic)
        await db.commit()

        return Seed(
            patron_id=users[0].id,
            other_patron_id=users[1].id,
            bartender_id=users[2].id,
            admin_id=users[3].id,
            gin_id=gin.id,
            tonic_id=tonic.id,
            lime_id=lime.id,
            gin_tonic_id=gin_tonic.id,
        )


class BarDatabase:
    """In-memory database with the bar seeded; use inside one event loop."""

    def __init__(self):
        self.engine = make_engine()
        self.session_maker = async_sessionmaker(self.engine, expire_on_commit=False)
        self.seed = None

    async def __aenter__(self):
        await create_db_and_tables(self.engine)
        self.seed = await seed_bar(self.session_maker)
        return self

    async def __aexit__(self, *exc):
        await self.engine.dispose()
