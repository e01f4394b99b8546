from __future__ import annotations

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_actor, get_session
from src.engine.enums import OrderStatus, PriorityCode
from src.schemas.orders import (
    AvailableTransitions,
    OrderCreate,
    OrderRead,
    PriorityUpdate,
    ProductionUpdate,
    StatusEventRead,
    TimelineRead,
    TransitionRequest,
    TransitionResponse,
)
from src.services.orders import OrderService, order_read

router = APIRouter(prefix="/orders", tags=["Orders"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[OrderRead],
    summary="List orders",
    description="List orders ordered by created_at desc.",
)
async def list_orders(
    session: AsyncSession = Depends(get_session),
    status: Optional[OrderStatus] = Query(None, description="Filter by status"),
    priority_code: Optional[PriorityCode] = Query(None, description="Filter by priority"),
    customer_name: Optional[str] = Query(None, description="Filter by customer name (substring)"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> List[OrderRead]:
    svc = OrderService(session)
    rows = await svc.list_orders(
        status_filter=status,
        priority_code=priority_code.value if priority_code else None,
        customer_name=customer_name,
        limit=limit,
        offset=offset,
    )
    return [order_read(x) for x in rows]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=OrderRead,
    summary="Create order",
    description="Create an order in draft and project its SLA timeline from the priority.",
)
async def create_order(
    payload: OrderCreate,
    session: AsyncSession = Depends(get_session),
    actor: Optional[str] = Depends(get_actor),
) -> OrderRead:
    order = await OrderService(session).create_order(payload, actor)
    return order_read(order)


# PUBLIC_INTERFACE
@router.get(
    "/{order_id}",
    response_model=OrderRead,
    summary="Get order",
)
async def get_order(
    order_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
) -> OrderRead:
    return order_read(await OrderService(session).get_order(order_id))


# PUBLIC_INTERFACE
@router.get(
    "/{order_id}/transitions",
    response_model=AvailableTransitions,
    summary="Available transitions",
    description="Forward and backward moves offered from the current status, with the production gate state.",
)
async def available_transitions(
    order_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
) -> AvailableTransitions:
    return await OrderService(session).available_transitions(order_id)


# PUBLIC_INTERFACE
@router.post(
    "/{order_id}/transitions",
    response_model=TransitionResponse,
    summary="Transition order status",
    description=(
        "Move the order to a new status. Backward moves (rollback, hold, cancel) need a reason. "
        "Entering production from a pre-production status needs every mandatory gate cleared."
    ),
    responses={409: {"description": "Illegal move, terminal order, production locked or version conflict"}},
)
async def transition_order(
    payload: TransitionRequest,
    order_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    actor: Optional[str] = Depends(get_actor),
) -> TransitionResponse:
    order, event, opened, reopened = await OrderService(session).transition(order_id, payload, actor)
    return TransitionResponse(
        order=order_read(order),
        event=StatusEventRead.model_validate(event),
        opened_gates=opened,
        reopened_gates=reopened,
    )


# PUBLIC_INTERFACE
@router.get(
    "/{order_id}/status-events",
    response_model=List[StatusEventRead],
    summary="Status history",
    description="Audit log of accepted status transitions, oldest first.",
)
async def list_status_events(
    order_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
) -> List[StatusEventRead]:
    rows = await OrderService(session).status_events(order_id)
    return [StatusEventRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.patch(
    "/{order_id}/priority",
    response_model=OrderRead,
    summary="Change priority",
    description="Set the priority and re-project the SLA timeline, keeping recorded completion dates.",
)
async def update_priority(
    payload: PriorityUpdate,
    order_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
) -> OrderRead:
    return order_read(await OrderService(session).update_priority(order_id, payload))


# PUBLIC_INTERFACE
@router.patch(
    "/{order_id}/production",
    response_model=OrderRead,
    summary="Record production progress",
    description="Set produced_qty; change requests filed afterwards are categorised against it.",
)
async def record_production(
    payload: ProductionUpdate,
    order_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
) -> OrderRead:
    return order_read(await OrderService(session).record_production(order_id, payload))


# PUBLIC_INTERFACE
@router.get(
    "/{order_id}/timeline",
    response_model=TimelineRead,
    summary="SLA timeline",
)
async def get_timeline(
    order_id: UUID = Path(...),
    as_of: Optional[date] = Query(None, description="Evaluate step states on this day; defaults to today"),
    session: AsyncSession = Depends(get_session),
) -> TimelineRead:
    return await OrderService(session).timeline(order_id, as_of)
