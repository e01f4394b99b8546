from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models.quality import QCRecord
from .base import BaseRepository


class QualityRepository(BaseRepository):
    """Repository for QC inspection records."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    def _filtered(
        self,
        *,
        order_id: Optional[UUID] = None,
        overall_result: Optional[str] = None,
        follow_up_open: Optional[bool] = None,
    ):
        stmt = select(QCRecord)
        if order_id:
            stmt = stmt.where(QCRecord.order_id == order_id)
        if overall_result:
            stmt = stmt.where(QCRecord.overall_result == overall_result)
        if follow_up_open is not None:
            open_clause = QCRecord.follow_up_required.is_(True) & QCRecord.follow_up_completed_at.is_(None)
            stmt = stmt.where(open_clause if follow_up_open else ~open_clause)
        return stmt

    async def get(self, record_id: UUID) -> Optional[QCRecord]:
        return await self.scalar_one_or_none(select(QCRecord).where(QCRecord.id == record_id))

    async def list_records(
        self,
        *,
        order_id: Optional[UUID],
        overall_result: Optional[str],
        follow_up_open: Optional[bool],
        limit: int,
        offset: int,
    ) -> List[QCRecord]:
        stmt = self._filtered(order_id=order_id, overall_result=overall_result, follow_up_open=follow_up_open)
        stmt = stmt.order_by(QCRecord.created_at.desc()).offset(offset).limit(limit)
        res = await self.scalars(stmt)
        return list(res)

    async def all_for_stats(self, *, order_id: Optional[UUID]) -> List[QCRecord]:
        res = await self.scalars(self._filtered(order_id=order_id))
        return list(res)
