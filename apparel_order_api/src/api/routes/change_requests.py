from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_actor, get_session
from src.engine.enums import ChangeRequestStatus, ChangeType
from src.schemas.change_requests import (
    CancelRequest,
    ChangeEstimateRequest,
    ChangeEstimateResponse,
    ChangeRequestCreate,
    ChangeRequestRead,
    ChangeRequestStats,
    CustomerResponse,
    PaymentRecord,
    QuoteRequest,
)
from src.services.change_requests import ChangeRequestService

router = APIRouter(prefix="/change-requests", tags=["Change Requests"])


# PUBLIC_INTERFACE
@router.post(
    "/estimate",
    response_model=ChangeEstimateResponse,
    summary="Estimate change fees",
    description="Price a change, classify its impact and category. Nothing is stored.",
)
async def estimate_change(
    payload: ChangeEstimateRequest,
    session: AsyncSession = Depends(get_session),
) -> ChangeEstimateResponse:
    return ChangeRequestService(session).estimate(payload)


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=ChangeRequestRead,
    summary="File change request",
    description="File a change against an order; phase and base amount default from the order.",
)
async def create_change_request(
    payload: ChangeRequestCreate,
    session: AsyncSession = Depends(get_session),
    actor: Optional[str] = Depends(get_actor),
) -> ChangeRequestRead:
    cr = await ChangeRequestService(session).create(payload, actor)
    return ChangeRequestRead.model_validate(cr)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[ChangeRequestRead],
    summary="List change requests",
    description="List change requests ordered by created_at desc.",
)
async def list_change_requests(
    session: AsyncSession = Depends(get_session),
    order_id: Optional[UUID] = Query(None, description="Filter by order"),
    status: Optional[ChangeRequestStatus] = Query(None, description="Filter by status"),
    change_type: Optional[ChangeType] = Query(None, description="Filter by change type"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> List[ChangeRequestRead]:
    rows = await ChangeRequestService(session).list_requests(
        order_id=order_id,
        status_filter=status,
        change_type=change_type.value if change_type else None,
        limit=limit,
        offset=offset,
    )
    return [ChangeRequestRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.get(
    "/stats",
    response_model=ChangeRequestStats,
    summary="Change request statistics",
)
async def change_request_stats(
    session: AsyncSession = Depends(get_session),
    order_id: Optional[UUID] = Query(None, description="Restrict to one order"),
) -> ChangeRequestStats:
    return await ChangeRequestService(session).stats(order_id)


# PUBLIC_INTERFACE
@router.get(
    "/{request_id}",
    response_model=ChangeRequestRead,
    summary="Get change request",
)
async def get_change_request(
    request_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
) -> ChangeRequestRead:
    return ChangeRequestRead.model_validate(await ChangeRequestService(session).get(request_id))


# PUBLIC_INTERFACE
@router.post(
    "/{request_id}/quote",
    response_model=ChangeRequestRead,
    summary="Quote change request",
    description="Add a manual fee and discount and send the quote to the customer.",
)
async def quote_change_request(
    payload: QuoteRequest,
    request_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    actor: Optional[str] = Depends(get_actor),
) -> ChangeRequestRead:
    cr = await ChangeRequestService(session).quote(request_id, payload, actor)
    return ChangeRequestRead.model_validate(cr)


# PUBLIC_INTERFACE
@router.post(
    "/{request_id}/respond",
    response_model=ChangeRequestRead,
    summary="Record customer response",
)
async def respond_change_request(
    payload: CustomerResponse,
    request_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
) -> ChangeRequestRead:
    cr = await ChangeRequestService(session).respond(request_id, payload)
    return ChangeRequestRead.model_validate(cr)


# PUBLIC_INTERFACE
@router.post(
    "/{request_id}/payment",
    response_model=ChangeRequestRead,
    summary="Record change fee payment",
)
async def record_change_payment(
    payload: PaymentRecord,
    request_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
) -> ChangeRequestRead:
    cr = await ChangeRequestService(session).record_payment(request_id, payload)
    return ChangeRequestRead.model_validate(cr)


# PUBLIC_INTERFACE
@router.post(
    "/{request_id}/complete",
    response_model=ChangeRequestRead,
    summary="Complete change request",
)
async def complete_change_request(
    request_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    actor: Optional[str] = Depends(get_actor),
) -> ChangeRequestRead:
    cr = await ChangeRequestService(session).complete(request_id, actor)
    return ChangeRequestRead.model_validate(cr)


# PUBLIC_INTERFACE
@router.post(
    "/{request_id}/cancel",
    response_model=ChangeRequestRead,
    summary="Cancel change request",
)
async def cancel_change_request(
    payload: CancelRequest,
    request_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
) -> ChangeRequestRead:
    cr = await ChangeRequestService(session).cancel(request_id, payload)
    return ChangeRequestRead.model_validate(cr)
