from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models.gates import ApprovalGate
from .base import BaseRepository


class GateRepository(BaseRepository):
    """Repository for order approval gates."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    async def get(self, gate_id: UUID) -> Optional[ApprovalGate]:
        return await self.scalar_one_or_none(select(ApprovalGate).where(ApprovalGate.id == gate_id))

    async def list_for_order(self, order_id: UUID) -> List[ApprovalGate]:
        res = await self.scalars(select(ApprovalGate).where(ApprovalGate.order_id == order_id))
        return list(res)

    async def get_by_type(self, order_id: UUID, gate_type: str) -> Optional[ApprovalGate]:
        stmt = select(ApprovalGate).where(
            ApprovalGate.order_id == order_id, ApprovalGate.gate_type == gate_type
        )
        return await self.scalar_one_or_none(stmt)
