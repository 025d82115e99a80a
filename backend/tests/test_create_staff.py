import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.auth import password_helper
from db.database import create_db_and_tables
from db.users import ROLE_ADMIN, ROLE_BARTENDER, ROLE_USER, User
from scripts.create_staff import upsert_staff
from tests.helpers import make_engine, run


def _with_db(body):
    async def scenario():
        engine = make_engine()
        session_maker = async_sessionmaker(engine, expire_on_commit=False)
        await create_db_and_tables(engine)
        try:
            return await body(session_maker)
        finally:
            await engine.dispose()

    return run(scenario())


def test_new_bartender_is_created_on_duty() -> None:
    async def body(session_maker):
        async with session_maker() as db:
            async with db.begin():
                await upsert_staff(db, " Bart@Example.com ", password="s3cret", name="Bart")
        async with session_maker() as db:
            return (await db.execute(select(User))).scalar_one()

    user = _with_db(body)
    assert user.email == "bart@example.com"
    assert user.role == ROLE_BARTENDER
    assert user.on_duty is True
    assert user.display_name == "Bart"
    assert password_helper.verify_and_update("s3cret", user.hashed_password)[0]


def test_existing_patron_is_promoted_and_keeps_password() -> None:
    async def body(session_maker):
        async with session_maker() as db:
            db.add(User(email="pat@example.com", hashed_password="old-hash", role=ROLE_USER, display_name="Pat"))
            await db.commit()
        async with session_maker() as db:
            async with db.begin():
                await upsert_staff(db, "pat@example.com", role=ROLE_ADMIN)
        async with session_maker() as db:
            return (await db.execute(select(User))).scalar_one()

    user = _with_db(body)
    assert user.role == ROLE_ADMIN
    assert user.on_duty is False
    assert user.hashed_password == "old-hash"
    assert user.display_name == "Pat"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"email": "x@example.com", "role": ROLE_USER, "password": "pw"},
        {"email": "new@example.com"},
        {"email": "  ", "password": "pw"},
    ],
)
def test_invalid_staff_requests_are_rejected(kwargs) -> None:
    async def body(session_maker):
        async with session_maker() as db:
            with pytest.raises(ValueError):
                await upsert_staff(db, **kwargs)

    _with_db(body)
