from contextlib import asynccontextmanager

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.auth import current_active_user
from core.hub import INVENTORY_UPDATED, ORDER_CREATED, TOPIC_INVENTORY, TOPIC_ORDERS, get_hub, topic_user
from db.database import create_db_and_tables, get_async_session, get_session_maker
from db.users import User
from main import app
from tests.helpers import make_engine, seed_bar


class Bar:
    def __init__(self, client: TestClient, seed, session_maker):
        self.client = client
        self.seed = seed
        self.session_maker = session_maker

    def act_as(self, user_id: int) -> None:
        session_maker = self.session_maker

        async def override_current_user():
            async with session_maker() as db:
                return await db.get(User, user_id)

        app.dependency_overrides[current_active_user] = override_current_user


@pytest.fixture
def bar(hub):
    engine = make_engine()
    session_maker = async_sessionmaker(engine, expire_on_commit=False)
    state = {}

    @asynccontextmanager
    async def test_lifespan(_app):
        await create_db_and_tables(engine)
        state["seed"] = await seed_bar(session_maker)
        yield
        await engine.dispose()

    async def override_get_async_session():
        async with session_maker() as session:
            yield session

    saved_lifespan = app.router.lifespan_context
    app.router.lifespan_context = test_lifespan
    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_session_maker] = lambda: session_maker
    app.dependency_overrides[get_hub] = lambda: hub
    try:
        with TestClient(app) as client:
            yield Bar(client, state["seed"], session_maker)
    finally:
        app.router.lifespan_context = saved_lifespan
        app.dependency_overrides.clear()


def _place(bar: Bar, **overrides):
    body = {"cocktail_id": bar.seed.gin_tonic_id, "quantity": 1, "notes": "", "location": "Sofa"}
    body.update(overrides)
    return bar.client.post("/orders/", json=body)


def test_health(bar: Bar) -> None:
    resp = bar.client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}


def test_anonymous_requests_are_rejected(bar: Bar) -> None:
    assert bar.client.get("/orders/mine").status_code == 401
    assert bar.client.get("/events/stream").status_code == 401


def test_place_order_and_list_mine(bar: Bar, hub) -> None:
    staff, _ = hub.subscribe([TOPIC_ORDERS])
    bar.act_as(bar.seed.patron_id)

    resp = _place(bar, quantity=2, notes="extra lime")
    assert resp.status_code == 201
    order = resp.json()
    assert order["status"] == "PLACED"
    assert order["cocktail_name"] == "Gin & Tonic"
    assert order["quantity"] == 2

    created = staff.get_nowait()
    assert created.type == ORDER_CREATED
    assert created.data == {"order_id": order["id"]}

    mine = bar.client.get("/orders/mine").json()
    assert [o["id"] for o in mine] == [order["id"]]

    flashes = bar.client.get("/flashes/").json()
    assert flashes == [{"level": "success", "message": "Order placed."}]


def test_validation_error_is_400_with_error_flash(bar: Bar) -> None:
    bar.act_as(bar.seed.patron_id)

    resp = _place(bar, location="  ")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Location is required."

    assert bar.client.get("/flashes/").json() == [{"level": "error", "message": "Location is required."}]
    assert bar.client.get("/flashes/").json() == []
    assert bar.client.get("/orders/mine").json() == []


def test_patrons_cannot_work_the_queue(bar: Bar) -> None:
    bar.act_as(bar.seed.patron_id)
    order_id = _place(bar).json()["id"]

    assert bar.client.get("/orders/queue").status_code == 403
    assert bar.client.post(f"/orders/{order_id}/accept").status_code == 403
    assert bar.client.post(f"/orders/{order_id}/cancel").status_code == 403


def test_bartender_moves_order_through_the_queue(bar: Bar, hub) -> None:
    s = bar.seed
    owner, _ = hub.subscribe([topic_user(s.patron_id)])
    bar.act_as(s.patron_id)
    order_id = _place(bar).json()["id"]

    bar.act_as(s.bartender_id)
    queue = bar.client.get("/orders/queue").json()
    assert [o["id"] for o in queue] == [order_id]

    accepted = bar.client.post(f"/orders/{order_id}/accept")
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "ACCEPTED"
    assert accepted.json()["assigned_bartender_id"] == s.bartender_id
    assert owner.get_nowait().data == {"order_id": order_id, "status": "ACCEPTED"}

    skipped = bar.client.post(f"/orders/{order_id}/status", json={"to_status": "DELIVERED"})
    assert skipped.status_code == 409

    assert bar.client.post(f"/orders/{order_id}/status", json={"to_status": "IN_PROGRESS"}).status_code == 200
    summary = bar.client.get("/bartender/summary").json()
    assert summary["counts"]["IN_PROGRESS"] == 1
    assert summary["counts"]["PLACED"] == 0

    detail = bar.client.get(f"/orders/{order_id}").json()
    assert [e["to_status"] for e in detail["events"]] == ["PLACED", "ACCEPTED", "IN_PROGRESS"]

    cancelled = bar.client.post(f"/orders/{order_id}/cancel")
    assert cancelled.json()["status"] == "CANCELLED"
    assert bar.client.get("/orders/queue").json() == []


def test_order_detail_hides_other_patrons_orders(bar: Bar) -> None:
    bar.act_as(bar.seed.patron_id)
    order_id = _place(bar).json()["id"]

    assert bar.client.get(f"/orders/{order_id}").status_code == 200
    bar.act_as(bar.seed.other_patron_id)
    assert bar.client.get(f"/orders/{order_id}").status_code == 404
    assert bar.client.get("/orders/999").status_code == 404


def test_assign_to_someone_else(bar: Bar) -> None:
    s = bar.seed
    bar.act_as(s.patron_id)
    order_id = _place(bar).json()["id"]

    bar.act_as(s.admin_id)
    resp = bar.client.post(f"/orders/{order_id}/assign", json={"bartender_id": s.bartender_id})
    assert resp.json()["assigned_bartender_id"] == s.bartender_id

    not_staff = bar.client.post(f"/orders/{order_id}/assign", json={"bartender_id": s.patron_id})
    assert not_staff.status_code == 400

    mine = bar.client.post(f"/orders/{order_id}/assign", json={})
    assert mine.json()["assigned_bartender_id"] == s.admin_id


def test_stock_change_updates_menu_and_notifies(bar: Bar, hub) -> None:
    s = bar.seed
    listener, _ = hub.subscribe([TOPIC_INVENTORY])
    bar.act_as(s.admin_id)

    assert [c["name"] for c in bar.client.get("/cocktails/", params={"only_available": True}).json()] == ["Gin & Tonic"]

    resp = bar.client.patch(f"/products/{s.tonic_id}/stock", json={"stock_count": 0})
    assert resp.status_code == 200
    assert resp.json()["computed_available"] is False
    assert listener.get_nowait().type == INVENTORY_UPDATED

    assert bar.client.get("/cocktails/", params={"only_available": True}).json() == []
    cocktail = bar.client.get(f"/cocktails/{s.gin_tonic_id}").json()
    assert cocktail["computed_available"] is False

    bar.act_as(s.patron_id)
    resp = _place(bar)
    assert resp.status_code == 400
    assert "Tonic" in resp.json()["detail"]


def test_manual_flag_only_counts_without_stock(bar: Bar) -> None:
    s = bar.seed
    bar.act_as(s.bartender_id)

    resp = bar.client.patch(f"/products/{s.tonic_id}/availability", json={"is_available": False})
    assert resp.json()["computed_available"] is True  # stock_count is 3

    resp = bar.client.patch(f"/products/{s.tonic_id}/stock", json={"stock_count": None})
    assert resp.json()["computed_available"] is False


def test_disabled_cocktails_are_hidden_from_patrons(bar: Bar) -> None:
    s = bar.seed
    bar.act_as(s.admin_id)
    assert bar.client.patch(f"/cocktails/{s.gin_tonic_id}/enabled", json={"is_enabled": False}).status_code == 200

    bar.act_as(s.patron_id)
    assert bar.client.get("/cocktails/").json() == []
    assert bar.client.get(f"/cocktails/{s.gin_tonic_id}").status_code == 404
    assert _place(bar).json()["detail"] == "Cocktail not available."


def test_create_cocktail_and_replace_ingredients(bar: Bar) -> None:
    s = bar.seed
    bar.act_as(s.admin_id)

    resp = bar.client.post(
        "/cocktails/",
        json={
            "name": "Gin Neat",
            "tags": ["strong", " classic "],
            "ingredients": [{"product_id": s.gin_id, "quantity": 60, "unit": "ml"}],
        },
    )
    assert resp.status_code == 201
    cocktail = resp.json()
    assert cocktail["tags"] == ["strong", "classic"]
    assert cocktail["computed_available"] is True

    resp = bar.client.put(
        f"/cocktails/{cocktail['id']}/ingredients",
        json={"ingredients": [{"product_id": s.lime_id, "required": True}]},
    )
    assert [i["product_name"] for i in resp.json()["ingredients"]] == ["Lime"]
    assert resp.json()["computed_available"] is False

    unknown = bar.client.put(f"/cocktails/{cocktail['id']}/ingredients", json={"ingredients": [{"product_id": 999}]})
    assert unknown.status_code == 400

    assert bar.client.delete(f"/cocktails/{cocktail['id']}").status_code == 204
    assert bar.client.get(f"/cocktails/{cocktail['id']}").status_code == 404

    # Lime is still part of the Gin & Tonic
    assert bar.client.delete(f"/products/{s.lime_id}").status_code == 400

    bitters = bar.client.post("/products/", json={"name": "Bitters", "category": "bitters"})
    assert bitters.status_code == 201
    assert bar.client.delete(f"/products/{bitters.json()['id']}").status_code == 204


def test_duty_toggle(bar: Bar) -> None:
    bar.act_as(bar.seed.bartender_id)
    assert bar.client.post("/bartender/duty").json()["on_duty"] is True
    assert bar.client.get("/bartender/summary").json()["on_duty"] is True
    assert bar.client.post("/bartender/duty").json()["on_duty"] is False


def test_register_login_and_use_session_cookie(bar: Bar) -> None:
    resp = bar.client.post(
        "/auth/register",
        json={"email": "newbie@example.com", "password": "correct horse", "display_name": "Newbie"},
    )
    assert resp.status_code == 201
    assert resp.json()["role"] == "USER"

    bad = bar.client.post("/auth/login", data={"username": "newbie@example.com", "password": "wrong"})
    assert bad.status_code == 400

    resp = bar.client.post("/auth/login", data={"username": "newbie@example.com", "password": "correct horse"})
    assert resp.status_code == 204
    assert "hb_session" in resp.cookies

    assert bar.client.get("/users/me").json()["display_name"] == "Newbie"
    assert bar.client.get("/orders/mine").status_code == 200

    bar.client.post("/auth/logout")
    assert bar.client.get("/orders/mine").status_code == 401


def test_negative_stock_is_rejected_on_create_and_update(bar: Bar) -> None:
    s = bar.seed
    bar.act_as(s.admin_id)

    resp = bar.client.post("/products/", json={"name": "Soda", "category": "mixer", "stock_count": -1})
    assert resp.status_code == 422
    assert bar.client.patch(f"/products/{s.tonic_id}/stock", json={"stock_count": -2}).status_code == 422
    assert bar.client.get("/products/", params={"search": "Soda"}).json() == []


def test_edit_cocktail_fields(bar: Bar, hub) -> None:
    s = bar.seed
    listener, _ = hub.subscribe([TOPIC_INVENTORY])
    bar.act_as(s.admin_id)

    resp = bar.client.patch(
        f"/cocktails/{s.gin_tonic_id}",
        json={"name": "G&T", "tags": [" classic ", ""], "prep_time_minutes": 3, "instructions": " Build over ice. "},
    )
    assert resp.status_code == 200
    cocktail = resp.json()
    assert cocktail["name"] == "G&T"
    assert cocktail["tags"] == ["classic"]
    assert cocktail["prep_time_minutes"] == 3
    assert cocktail["instructions"] == "Build over ice."
    assert cocktail["difficulty"] == "easy"
    assert len(cocktail["ingredients"]) == 3
    assert listener.get_nowait().type == INVENTORY_UPDATED

    # Renaming to its own name in another case is not a conflict
    assert bar.client.patch(f"/cocktails/{s.gin_tonic_id}", json={"name": "g&t"}).status_code == 200

    assert bar.client.post("/cocktails/", json={"name": "Gin Neat"}).status_code == 201
    taken = bar.client.patch(f"/cocktails/{s.gin_tonic_id}", json={"name": "gin neat"})
    assert taken.status_code == 400
    assert taken.json()["detail"] == "A cocktail with this name already exists"

    assert bar.client.patch(f"/cocktails/{s.gin_tonic_id}", json={"prep_time_minutes": -1}).status_code == 422
    assert bar.client.patch(f"/cocktails/{s.gin_tonic_id}", json={"name": "  "}).status_code == 422
    assert bar.client.patch("/cocktails/999", json={"name": "Ghost"}).status_code == 404

    resp = bar.client.patch(f"/cocktails/{s.gin_tonic_id}", json={"is_enabled": False})
    assert resp.json()["is_enabled"] is False
    assert resp.json()["name"] == "g&t"

    bar.act_as(s.patron_id)
    assert bar.client.patch(f"/cocktails/{s.gin_tonic_id}", json={"name": "Mine"}).status_code == 403


def test_menu_filters(bar: Bar) -> None:
    s = bar.seed
    bar.act_as(s.admin_id)
    resp = bar.client.post(
        "/cocktails/",
        json={
            "name": "Virgin Tonic",
            "tags": ["non-alcoholic", "refreshing"],
            "ingredients": [{"product_id": s.tonic_id, "quantity": 200, "unit": "ml"}],
        },
    )
    assert resp.status_code == 201

    bar.act_as(s.patron_id)

    def names(**params):
        resp = bar.client.get("/cocktails/", params=params)
        assert resp.status_code == 200
        return [c["name"] for c in resp.json()]

    assert names() == ["Gin & Tonic", "Virgin Tonic"]
    assert names(alc="non") == ["Virgin Tonic"]
    assert names(alc="alcohol") == ["Gin & Tonic"]
    assert names(tag="fresh") == ["Virgin Tonic"]
    assert names(include="gin") == ["Gin & Tonic"]
    assert names(include="tonic") == ["Gin & Tonic", "Virgin Tonic"]
    assert names(exclude="gin") == ["Virgin Tonic"]
    # Optional ingredients count as well
    assert names(exclude="lime") == ["Virgin Tonic"]
    assert names(only_available=True, alc="non") == ["Virgin Tonic"]

    assert bar.client.get("/cocktails/", params={"alc": "maybe"}).status_code == 422
