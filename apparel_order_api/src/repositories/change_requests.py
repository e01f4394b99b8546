from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models.change_requests import ChangeRequest
from .base import BaseRepository


class ChangeRequestRepository(BaseRepository):
    """Repository for change requests."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    async def get(self, request_id: UUID) -> Optional[ChangeRequest]:
        return await self.scalar_one_or_none(select(ChangeRequest).where(ChangeRequest.id == request_id))

    def _filtered(
        self,
        *,
        order_id: Optional[UUID] = None,
        status: Optional[str] = None,
        change_type: Optional[str] = None,
    ):
        stmt = select(ChangeRequest)
        if order_id:
            stmt = stmt.where(ChangeRequest.order_id == order_id)
        if status:
            stmt = stmt.where(ChangeRequest.status == status)
        if change_type:
            stmt = stmt.where(ChangeRequest.change_type == change_type)
        return stmt

    async def list_requests(
        self,
        *,
        order_id: Optional[UUID],
        status: Optional[str],
        change_type: Optional[str],
        limit: int,
        offset: int,
    ) -> List[ChangeRequest]:
        stmt = self._filtered(order_id=order_id, status=status, change_type=change_type)
        stmt = stmt.order_by(ChangeRequest.created_at.desc(), ChangeRequest.request_number.desc())
        res = await self.scalars(stmt.offset(offset).limit(limit))
        return list(res)

    async def all_for_stats(self, *, order_id: Optional[UUID]) -> List[ChangeRequest]:
        res = await self.scalars(self._filtered(order_id=order_id))
        return list(res)

    async def count_requests(self) -> int:
        return await self.count(select(ChangeRequest.id))
