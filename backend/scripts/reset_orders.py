"""
Delete ALL orders and their status history from the database.

Run from backend/:
  python scripts/reset_orders.py
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import delete  # noqa: E402

from db.database import async_session_maker  # noqa: E402
from db.order import Order, OrderEvent  # noqa: E402


async def main() -> None:
    async with async_session_maker() as db:
        # Delete children first (FK)
        res_events = await db.execute(delete(OrderEvent))
        res_orders = await db.execute(delete(Order))
        await db.commit()

        events_n = int(getattr(res_events, "rowcount", 0) or 0)
        orders_n = int(getattr(res_orders, "rowcount", 0) or 0)
        print(f"Deleted order_events: {events_n}, orders: {orders_n}")


if __name__ == "__main__":
    asyncio.run(main())
