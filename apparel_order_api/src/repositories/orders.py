from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models.orders import Order, OrderStatusEvent
from .base import BaseRepository


class OrderRepository(BaseRepository):
    """Repository for orders and their status event log."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    async def get(self, order_id: UUID) -> Optional[Order]:
        return await self.scalar_one_or_none(select(Order).where(Order.id == order_id))

    async def list_orders(
        self,
        *,
        status: Optional[str],
        priority_code: Optional[str],
        customer_name: Optional[str],
        limit: int,
        offset: int,
    ) -> List[Order]:
        stmt = select(Order)
        if status:
            stmt = stmt.where(Order.status == status)
        if priority_code:
            stmt = stmt.where(Order.priority_code == priority_code)
        if customer_name:
            stmt = stmt.where(Order.customer_name.ilike(f"%{customer_name}%"))
        stmt = stmt.order_by(Order.created_at.desc(), Order.order_number.desc()).offset(offset).limit(limit)
        res = await self.scalars(stmt)
        return list(res)

    async def count_orders(self) -> int:
        return await self.count(select(Order.id))

    async def number_exists(self, order_number: str) -> bool:
        found = await self.scalar_one_or_none(select(Order.id).where(Order.order_number == order_number))
        return found is not None

    async def list_status_events(self, order_id: UUID) -> List[OrderStatusEvent]:
        stmt = (
            select(OrderStatusEvent)
            .where(OrderStatusEvent.order_id == order_id)
            .order_by(OrderStatusEvent.created_at.asc())
        )
        res = await self.scalars(stmt)
        return list(res)
