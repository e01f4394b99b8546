from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_actor, get_session
from src.schemas.gates import GateCreate, GateRead, GatesSummaryRead, GateUpdate
from src.services.gates import GateService, gate_read, summary_read

router = APIRouter(tags=["Gates"])


# PUBLIC_INTERFACE
@router.get(
    "/orders/{order_id}/gates",
    response_model=List[GateRead],
    summary="List order gates",
    description="Approval gates of an order in canonical order.",
)
async def list_gates(
    order_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
) -> List[GateRead]:
    return [gate_read(g) for g in await GateService(session).list_gates(order_id)]


# PUBLIC_INTERFACE
@router.post(
    "/orders/{order_id}/gates",
    response_model=GateRead,
    summary="Open gate",
    description="Open a gate on the order; name and flags default from the gate type.",
)
async def open_gate(
    payload: GateCreate,
    order_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
) -> GateRead:
    return gate_read(await GateService(session).open_gate(order_id, payload))


# PUBLIC_INTERFACE
@router.get(
    "/orders/{order_id}/gates/summary",
    response_model=GatesSummaryRead,
    summary="Gate summary",
    description="Whether production is unlocked and which mandatory gates still block it.",
)
async def gates_summary(
    order_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
) -> GatesSummaryRead:
    summary = await GateService(session).summarize(order_id)
    return summary_read(order_id, summary)


# PUBLIC_INTERFACE
@router.patch(
    "/gates/{gate_id}",
    response_model=GateRead,
    summary="Update gate",
    description="Move the gate along its lifecycle, record item progress or customer confirmation.",
)
async def update_gate(
    payload: GateUpdate,
    gate_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    actor: Optional[str] = Depends(get_actor),
) -> GateRead:
    return gate_read(await GateService(session).update_gate(gate_id, payload, actor))
