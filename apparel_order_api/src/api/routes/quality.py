from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_actor, get_session
from src.engine.enums import QCResult
from src.schemas.quality import (
    CheckpointTemplateRead,
    QCEvaluateRequest,
    QCEvaluationRead,
    QCRecordCreate,
    QCRecordRead,
    QCStats,
)
from src.services.quality import QualityService

router = APIRouter(prefix="/quality", tags=["Quality"])


# PUBLIC_INTERFACE
@router.post(
    "/evaluate",
    response_model=QCEvaluationRead,
    summary="Evaluate inspection",
    description="Compute pass rate, overall result and follow-up need. Nothing is stored.",
)
async def evaluate_inspection(
    payload: QCEvaluateRequest,
    session: AsyncSession = Depends(get_session),
) -> QCEvaluationRead:
    return QualityService(session).evaluate(payload)


# PUBLIC_INTERFACE
@router.get(
    "/checkpoint-templates",
    response_model=List[CheckpointTemplateRead],
    summary="Default checkpoints",
    description="Checkpoint templates for a work type; unknown types get the generic pair.",
)
async def checkpoint_templates(
    work_type_code: Optional[str] = Query(None, description="dtg, dtf, embroidery, silkscreen, sewing"),
    session: AsyncSession = Depends(get_session),
) -> List[CheckpointTemplateRead]:
    return QualityService(session).checkpoint_templates(work_type_code)


# PUBLIC_INTERFACE
@router.post(
    "/qc-records",
    response_model=QCRecordRead,
    summary="Record inspection",
)
async def create_qc_record(
    payload: QCRecordCreate,
    session: AsyncSession = Depends(get_session),
    actor: Optional[str] = Depends(get_actor),
) -> QCRecordRead:
    record = await QualityService(session).create_record(payload, actor)
    return QCRecordRead.model_validate(record)


# PUBLIC_INTERFACE
@router.get(
    "/qc-records",
    response_model=List[QCRecordRead],
    summary="List inspections",
    description="List QC records ordered by created_at desc.",
)
async def list_qc_records(
    session: AsyncSession = Depends(get_session),
    order_id: Optional[UUID] = Query(None, description="Filter by order"),
    overall_result: Optional[QCResult] = Query(None, description="Filter by result"),
    follow_up_open: Optional[bool] = Query(None, description="Only records whose follow-up is (not) open"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> List[QCRecordRead]:
    rows = await QualityService(session).list_records(
        order_id=order_id,
        overall_result=overall_result,
        follow_up_open=follow_up_open,
        limit=limit,
        offset=offset,
    )
    return [QCRecordRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.get(
    "/qc-records/stats",
    response_model=QCStats,
    summary="Inspection statistics",
)
async def qc_stats(
    session: AsyncSession = Depends(get_session),
    order_id: Optional[UUID] = Query(None, description="Restrict to one order"),
) -> QCStats:
    return await QualityService(session).stats(order_id)


# PUBLIC_INTERFACE
@router.post(
    "/qc-records/{record_id}/follow-up",
    response_model=QCRecordRead,
    summary="Complete follow-up",
    description="Close the follow-up of an inspection that required one.",
)
async def complete_follow_up(
    record_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
) -> QCRecordRead:
    record = await QualityService(session).complete_follow_up(record_id)
    return QCRecordRead.model_validate(record)
