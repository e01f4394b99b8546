from __future__ import annotations

import logging
import secrets
from collections import Counter
from dataclasses import asdict
from datetime import datetime, timezone
from typing import List, Optional, Union
from uuid import UUID

from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import DomainError, NotFoundError, raise_for_rejection
from src.db.models.change_requests import ChangeRequest
from src.engine import approval_gates, status_graph
from src.engine.change_fees import (
    ChangeFeeCalculator,
    ChangeImpact,
    FeeBreakdown,
    FeeOptions,
    ImpactContext,
    analyze_impact,
    change_request_transition,
    determine_change_category,
)
from src.engine.enums import ChangeRequestStatus, GateType, OrderPhase, OrderStatus
from src.engine.results import EngineError, Rejected, clean_reason
from src.repositories.change_requests import ChangeRequestRepository
from src.repositories.gates import GateRepository
from src.repositories.orders import OrderRepository
from src.schemas.change_requests import (
    CancelRequest,
    ChangeEstimateRequest,
    ChangeEstimateResponse,
    ChangeImpactRead,
    ChangeRequestCreate,
    ChangeRequestStats,
    CustomerResponse,
    FeeBreakdownRead,
    PaymentRecord,
    QuoteRequest,
)
from src.services.base import BaseService

logger = logging.getLogger(__name__)

CR = ChangeRequestStatus

_NOT_QUOTED = frozenset({CR.PENDING_QUOTE, CR.CANCELLED, CR.REJECTED})
_FEE_FIELDS = (
    "base_fee",
    "design_fee",
    "rework_fee",
    "material_fee",
    "waste_fee",
    "rush_fee",
    "other_fee",
    "discount",
    "total_fee",
)


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _fees_or_raise(result: Union[FeeBreakdown, Rejected]) -> FeeBreakdown:
    if isinstance(result, Rejected):
        raise_for_rejection(result)
    return result


def _impact_record(impact: ChangeImpact) -> dict:
    record = asdict(impact)
    record["severity"] = impact.severity.value
    return record


def _generate_request_number() -> str:
    return f"CR-{_now():%Y%m%d}-{secrets.token_hex(3).upper()}"


class ChangeRequestService(BaseService):
    """
    Change request workflow.

    pending_quote -> awaiting_customer -> [awaiting_payment ->] in_progress -> completed,
    with cancelled/rejected reachable from every non-final status.
    """

    def __init__(self, session: AsyncSession, calculator: Optional[ChangeFeeCalculator] = None) -> None:
        super().__init__(session)
        self.repo = ChangeRequestRepository(session)
        self.orders = OrderRepository(session)
        self.gates = GateRepository(session)
        self.calculator = calculator or ChangeFeeCalculator()

    # PUBLIC_INTERFACE
    def estimate(self, payload: ChangeEstimateRequest) -> ChangeEstimateResponse:
        """Price a hypothetical change without storing anything."""
        fees = _fees_or_raise(
            self.calculator.calculate_fees(
                payload.phase,
                payload.change_type,
                payload.base_amount,
                FeeOptions(
                    quantity_change=payload.quantity_change,
                    waste_qty=payload.waste_qty,
                    waste_unit_cost=payload.waste_unit_cost,
                    is_rush=payload.is_rush,
                ),
            )
        )
        return ChangeEstimateResponse(
            fees=FeeBreakdownRead.model_validate(fees),
            impact_level=self.calculator.get_impact_level(
                payload.phase, payload.production_started, payload.affects_schedule
            ),
            change_category=determine_change_category(
                payload.change_type, payload.phase, payload.produced_qty, payload.ordered_qty
            ),
            impact_analysis=ChangeImpactRead.model_validate(
                analyze_impact(
                    payload.change_type,
                    payload.phase,
                    ImpactContext(
                        produced_qty=payload.produced_qty,
                        ordered_qty=payload.ordered_qty,
                        materials_ordered=payload.materials_ordered,
                        materials_received=payload.materials_received,
                        designs_approved=payload.designs_approved,
                        quantity_change=payload.quantity_change,
                    ),
                )
            ),
        )

    # PUBLIC_INTERFACE
    async def get(self, request_id: UUID) -> ChangeRequest:
        cr = await self.repo.get(request_id)
        if cr is None:
            raise NotFoundError("Change request", request_id)
        return cr

    # PUBLIC_INTERFACE
    async def list_requests(
        self,
        *,
        order_id: Optional[UUID] = None,
        status_filter: Optional[ChangeRequestStatus] = None,
        change_type: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[ChangeRequest]:
        return await self.repo.list_requests(
            order_id=order_id,
            status=status_filter.value if status_filter else None,
            change_type=change_type,
            limit=limit,
            offset=offset,
        )

    # PUBLIC_INTERFACE
    async def create(self, payload: ChangeRequestCreate, actor: Optional[str]) -> ChangeRequest:
        """
        File a change request against an order.

        Parameters:
            payload: change details; order_phase and base_amount default from the order
            actor: operator filing the request
        Returns:
            The stored request in pending_quote, with fees, impact and category computed.
        Raises:
            DomainError: order missing (404) or cancelled (409), phase undeterminable
                or negative amounts (422).
        """
        order = await self.orders.get(payload.order_id)
        if order is None:
            raise NotFoundError("Order", payload.order_id)
        if order.status == OrderStatus.CANCELLED.value:
            raise_for_rejection(
                Rejected(EngineError.TERMINAL_STATE, "Order is cancelled; changes are no longer accepted")
            )

        phase: Optional[OrderPhase] = payload.order_phase or status_graph.phase_for_status(order.status)
        if phase is None:
            raise DomainError(
                status.HTTP_422_UNPROCESSABLE_ENTITY,
                "phase_required",
                f"Order is {order.status}; order_phase must be given explicitly",
            )

        base_amount = order.total_amount if payload.base_amount is None else payload.base_amount
        started = status_graph.production_started(order.status)
        impact = await self._analyze(order, phase, payload)
        waste_qty = payload.waste_qty
        if waste_qty is None and impact.waste_qty > 0:
            waste_qty = float(impact.waste_qty)
        days_delayed = impact.delay_days if payload.days_delayed is None else payload.days_delayed
        affects_schedule = payload.affects_schedule or days_delayed > 0 or impact.affects_due_date
        fees = _fees_or_raise(
            self.calculator.calculate_fees(
                phase,
                payload.change_type,
                base_amount,
                FeeOptions(
                    quantity_change=payload.quantity_change,
                    waste_qty=waste_qty,
                    waste_unit_cost=payload.waste_unit_cost,
                    is_rush=payload.is_rush,
                ),
            )
        )

        cr = ChangeRequest(
            request_number=_generate_request_number(),
            order_id=order.id,
            order_phase=phase.value,
            change_type=payload.change_type.value,
            change_category=determine_change_category(
                payload.change_type, phase, order.produced_qty, order.ordered_qty
            ).value,
            status=CR.PENDING_QUOTE.value,
            title=payload.title.strip(),
            description=payload.description,
            customer_reason=payload.customer_reason,
            impact_level=self.calculator.get_impact_level(phase, started, affects_schedule).value,
            production_started=started,
            affects_schedule=affects_schedule,
            days_delayed=days_delayed,
            quantity_change=payload.quantity_change,
            waste_qty=waste_qty,
            waste_unit_cost=payload.waste_unit_cost,
            is_rush=payload.is_rush,
            impact_analysis=_impact_record(impact),
            base_amount=base_amount,
            payment_required=fees.total_fee > 0,
            created_by=actor,
            **{name: getattr(fees, name) for name in _FEE_FIELDS},
        )
        await self.repo.add(cr)
        await self.commit()
        logger.info(
            "Change request %s filed on order %s: %s in phase %s, total_fee=%.2f",
            cr.request_number, order.order_number, cr.change_type, cr.order_phase, cr.total_fee,
        )
        await self._publish(cr, "change_request.created")
        return cr

    async def _analyze(self, order, phase: OrderPhase, payload: ChangeRequestCreate) -> ChangeImpact:
        gates = await self.gates.list_for_order(order.id)
        summary = approval_gates.summarize(gates)
        return analyze_impact(
            payload.change_type,
            phase,
            ImpactContext(
                produced_qty=order.produced_qty,
                ordered_qty=order.ordered_qty,
                materials_ordered=any(g.gate_type == GateType.MATERIAL.value for g in gates),
                materials_received=summary.material_ready,
                designs_approved=summary.design_approved,
                quantity_change=payload.quantity_change,
            ),
        )

    async def _move(self, cr: ChangeRequest, target: ChangeRequestStatus) -> None:
        result = change_request_transition(cr.status, target)
        if isinstance(result, Rejected):
            logger.warning("Change request %s move %s -> %s rejected", cr.request_number, cr.status, target.value)
            raise_for_rejection(result)
        cr.status = result.status

    # PUBLIC_INTERFACE
    async def quote(self, request_id: UUID, payload: QuoteRequest, actor: Optional[str]) -> ChangeRequest:
        """Apply the manual fee adjustments and send the quote to the customer."""
        cr = await self.get(request_id)
        await self._move(cr, CR.AWAITING_CUSTOMER)
        current = FeeBreakdown(**{name: getattr(cr, name) or 0.0 for name in _FEE_FIELDS})
        adjusted = _fees_or_raise(current.adjusted(other_fee=payload.other_fee, discount=payload.discount))
        cr.other_fee = adjusted.other_fee
        cr.discount = adjusted.discount
        cr.total_fee = adjusted.total_fee
        cr.other_fee_description = payload.other_fee_description
        cr.payment_required = (
            adjusted.total_fee > 0 if payload.payment_required is None else payload.payment_required
        )
        if payload.admin_notes is not None:
            cr.admin_notes = payload.admin_notes
        cr.quoted_at = _now()
        cr.quoted_by = actor
        await self.commit()
        await self._publish(cr, "change_request.quoted")
        return cr

    # PUBLIC_INTERFACE
    async def respond(self, request_id: UUID, payload: CustomerResponse) -> ChangeRequest:
        """Record the customer's answer to the quote."""
        cr = await self.get(request_id)
        if payload.accept:
            await self._move(cr, CR.AWAITING_PAYMENT if cr.payment_required else CR.IN_PROGRESS)
            cr.customer_response = "accepted"
        else:
            if cr.status != CR.AWAITING_CUSTOMER.value:
                raise_for_rejection(
                    Rejected(
                        EngineError.ILLEGAL_TRANSITION,
                        f"Change request is {cr.status}; only a quoted request can be declined",
                    )
                )
            await self._move(cr, CR.REJECTED)
            cr.customer_response = "rejected"
        cr.customer_responded_at = _now()
        if payload.notes:
            cr.admin_notes = "\n".join(filter(None, (cr.admin_notes, payload.notes)))
        await self.commit()
        await self._publish(cr, "change_request.responded")
        return cr

    # PUBLIC_INTERFACE
    async def record_payment(self, request_id: UUID, payload: PaymentRecord) -> ChangeRequest:
        cr = await self.get(request_id)
        if cr.status != CR.AWAITING_PAYMENT.value:
            raise_for_rejection(
                Rejected(EngineError.ILLEGAL_TRANSITION, f"Change request is {cr.status}; no payment is awaited")
            )
        await self._move(cr, CR.IN_PROGRESS)
        cr.payment_received_at = _now()
        cr.payment_reference = payload.payment_reference
        await self.commit()
        await self._publish(cr, "change_request.paid")
        return cr

    # PUBLIC_INTERFACE
    async def complete(self, request_id: UUID, actor: Optional[str]) -> ChangeRequest:
        cr = await self.get(request_id)
        await self._move(cr, CR.COMPLETED)
        cr.completed_at = _now()
        cr.completed_by = actor
        await self.commit()
        await self._publish(cr, "change_request.completed")
        return cr

    # PUBLIC_INTERFACE
    async def cancel(self, request_id: UUID, payload: CancelRequest) -> ChangeRequest:
        cr = await self.get(request_id)
        reason = clean_reason(payload.reason)
        if reason is None:
            raise_for_rejection(Rejected(EngineError.REASON_REQUIRED, "A reason is required to cancel"))
        await self._move(cr, CR.CANCELLED)
        cr.cancel_reason = reason
        await self.commit()
        await self._publish(cr, "change_request.cancelled")
        return cr

    # PUBLIC_INTERFACE
    async def stats(self, order_id: Optional[UUID] = None) -> ChangeRequestStats:
        """Counts by status, type and impact plus quoted and collected fee totals."""
        requests = await self.repo.all_for_stats(order_id=order_id)
        quoted = [r for r in requests if ChangeRequestStatus(r.status) not in _NOT_QUOTED]
        collected = [
            r for r in requests
            if r.payment_received_at is not None or r.status == CR.COMPLETED.value
        ]
        return ChangeRequestStats(
            total=len(requests),
            by_status=dict(Counter(r.status for r in requests)),
            awaiting_customer=sum(1 for r in requests if r.status == CR.AWAITING_CUSTOMER.value),
            total_fees_quoted=round(sum(r.total_fee for r in quoted), 2),
            total_fees_collected=round(sum(r.total_fee for r in collected), 2),
            by_type=dict(Counter(r.change_type for r in requests)),
            by_impact=dict(Counter(r.impact_level for r in requests)),
        )

    async def _publish(self, cr: ChangeRequest, event_type: str) -> None:
        await self.publish(
            event_type,
            cr.order_id,
            {
                "change_request_id": str(cr.id),
                "request_number": cr.request_number,
                "status": cr.status,
                "total_fee": cr.total_fee,
            },
        )
