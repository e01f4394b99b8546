"""
Database seeding utilities for demo data.

Seeds:
- One demo order in draft (with its projected SLA timeline and first status event)

Usage:
  python -m src.db.run_migrations upgrade head
  python -m src.db.seed
"""

from __future__ import annotations

import asyncio
import logging

from src.db.session import get_async_session
from src.engine.enums import PriorityCode, ProductionMode
from src.repositories.orders import OrderRepository
from src.schemas.orders import OrderCreate
from src.services.orders import OrderService

logger = logging.getLogger(__name__)

DEMO_ORDER = OrderCreate(
    customer_name="Demo Customer",
    order_number="ORD-DEMO-0001",
    priority_code=PriorityCode.NORMAL,
    production_mode=ProductionMode.IN_HOUSE,
    work_type_code="dtg",
    total_amount=12000,
    ordered_qty=100,
    notes="Seeded demo order",
)


# PUBLIC_INTERFACE
async def seed_all() -> None:
    """
    Seed the database with a demo order.

    Does nothing when the demo order number already exists.
    """
    async for session in get_async_session():
        if await OrderRepository(session).number_exists(DEMO_ORDER.order_number):
            logger.info("Demo order %s already present; skipping seed", DEMO_ORDER.order_number)
            return
        order = await OrderService(session).create_order(DEMO_ORDER, actor="seed")
        logger.info("Seeded demo order %s", order.order_number)


# PUBLIC_INTERFACE
def main() -> None:
    """Entrypoint to run the asynchronous seeding."""
    asyncio.run(seed_all())


if __name__ == "__main__":
    main()
