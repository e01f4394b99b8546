from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Union
from uuid import UUID

from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import DomainError, NotFoundError, raise_for_rejection
from src.db.models.quality import QCRecord
from src.engine import qc
from src.engine.enums import QCResult
from src.engine.results import Rejected
from src.repositories.orders import OrderRepository
from src.repositories.qual import QualityRepository
from src.schemas.quality import (
    CheckpointIn,
    CheckpointTemplateRead,
    QCEvaluateRequest,
    QCEvaluationRead,
    QCRecordCreate,
    QCStats,
)
from src.services.base import BaseService

logger = logging.getLogger(__name__)


def _evaluation_or_raise(result: Union[qc.QCEvaluation, Rejected]) -> qc.QCEvaluation:
    if isinstance(result, Rejected):
        raise_for_rejection(result)
    return result


class QualityService(BaseService):
    """QC inspections: pass rate, overall result and follow-up tracking."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = QualityRepository(session)
        self.orders = OrderRepository(session)

    # PUBLIC_INTERFACE
    def evaluate(self, payload: QCEvaluateRequest) -> QCEvaluationRead:
        """Evaluate an inspection without storing it."""
        evaluation = _evaluation_or_raise(
            qc.evaluate(
                payload.total_qty,
                payload.passed_qty,
                payload.failed_qty,
                payload.rework_qty,
                payload.checkpoints,
            )
        )
        return QCEvaluationRead.model_validate(evaluation)

    # PUBLIC_INTERFACE
    def checkpoint_templates(self, work_type_code: Optional[str]) -> List[CheckpointTemplateRead]:
        return [CheckpointTemplateRead.model_validate(t) for t in qc.default_checkpoints(work_type_code)]

    # PUBLIC_INTERFACE
    async def create_record(self, payload: QCRecordCreate, actor: Optional[str]) -> QCRecord:
        """
        Store an inspection with its evaluated result.

        An empty checkpoint list is filled from the work type templates, each
        marked passed when the batch had no failed units.

        Parameters:
            payload: quantities, stage, checkpoints and the order inspected
            actor: inspector recorded as checked_by
        Returns:
            The stored QC record.
        """
        order = await self.orders.get(payload.order_id)
        if order is None:
            raise NotFoundError("Order", payload.order_id)

        checkpoints = list(payload.checkpoints)
        if not checkpoints:
            work_type = payload.work_type_code or order.work_type_code
            checkpoints = [
                CheckpointIn(code=t.code, name=t.name, passed=payload.failed_qty == 0)
                for t in qc.default_checkpoints(work_type)
            ]

        evaluation = _evaluation_or_raise(
            qc.evaluate(
                payload.total_qty,
                payload.passed_qty,
                payload.failed_qty,
                payload.rework_qty,
                checkpoints,
            )
        )
        record = QCRecord(
            order_id=order.id,
            qc_stage=payload.qc_stage.value,
            total_qty=payload.total_qty,
            passed_qty=payload.passed_qty,
            failed_qty=payload.failed_qty,
            rework_qty=payload.rework_qty,
            pass_rate=evaluation.pass_rate,
            overall_result=evaluation.overall_result.value,
            worst_severity=evaluation.worst_severity.value if evaluation.worst_severity else None,
            checkpoints=[c.model_dump(mode="json") for c in checkpoints],
            notes=payload.notes,
            checked_by=actor,
            follow_up_required=evaluation.follow_up_required,
        )
        await self.repo.add(record)
        await self.commit()
        logger.info(
            "QC record %s for order %s: %s at %d%%",
            record.id, order.order_number, record.overall_result, record.pass_rate,
        )
        await self.publish(
            "qc.recorded",
            order.id,
            {
                "qc_record_id": str(record.id),
                "qc_stage": record.qc_stage,
                "pass_rate": record.pass_rate,
                "overall_result": record.overall_result,
                "follow_up_required": record.follow_up_required,
            },
        )
        return record

    # PUBLIC_INTERFACE
    async def list_records(
        self,
        *,
        order_id: Optional[UUID] = None,
        overall_result: Optional[QCResult] = None,
        follow_up_open: Optional[bool] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[QCRecord]:
        return await self.repo.list_records(
            order_id=order_id,
            overall_result=overall_result.value if overall_result else None,
            follow_up_open=follow_up_open,
            limit=limit,
            offset=offset,
        )

    # PUBLIC_INTERFACE
    async def complete_follow_up(self, record_id: UUID) -> QCRecord:
        """Close the follow-up of a record that required one."""
        record = await self.repo.get(record_id)
        if record is None:
            raise NotFoundError("QC record", record_id)
        if not record.follow_up_required or record.follow_up_completed_at is not None:
            raise DomainError(
                status.HTTP_409_CONFLICT,
                "follow_up_not_required",
                "QC record has no open follow-up",
            )
        record.follow_up_completed_at = datetime.now(tz=timezone.utc)
        await self.commit()
        await self.publish(
            "qc.follow_up_completed",
            record.order_id,
            {"qc_record_id": str(record.id)},
        )
        return record

    # PUBLIC_INTERFACE
    async def stats(self, order_id: Optional[UUID] = None) -> QCStats:
        records = await self.repo.all_for_stats(order_id=order_id)
        by_result = {r: sum(1 for rec in records if rec.overall_result == r.value) for r in QCResult}
        return QCStats(
            total_records=len(records),
            passed=by_result[QCResult.PASS],
            passed_with_rework=by_result[QCResult.PASS_WITH_REWORK],
            failed=by_result[QCResult.FAIL],
            follow_up_open=sum(
                1 for r in records if r.follow_up_required and r.follow_up_completed_at is None
            ),
            avg_pass_rate=round(sum(r.pass_rate for r in records) / len(records), 1) if records else 0.0,
        )
