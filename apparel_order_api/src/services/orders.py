from __future__ import annotations

import logging
import secrets
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import DomainError, NotFoundError, VersionConflictError, raise_for_rejection
from src.db.models.orders import Order, OrderStatusEvent
from src.engine import approval_gates, sla, status_graph
from src.engine.enums import OrderStatus, TransitionDirection
from src.engine.results import EngineError, Rejected
from src.repositories.gates import GateRepository
from src.repositories.orders import OrderRepository
from src.schemas.orders import (
    AvailableTransitions,
    OrderCreate,
    OrderRead,
    PriorityUpdate,
    ProductionUpdate,
    TimelineRead,
    TimelineStepRead,
    TransitionOption,
    TransitionRequest,
)
from src.services.base import BaseService
from src.services.gates import GateService

logger = logging.getLogger(__name__)


def _date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


# PUBLIC_INTERFACE
def load_timeline(raw: Optional[Sequence[Dict[str, Any]]]) -> List[sla.TimelineStep]:
    """Stored JSON timeline to engine steps."""
    return [
        sla.TimelineStep(key=s["key"], deadline=_date(s.get("deadline")), actual=_date(s.get("actual")))
        for s in raw or ()
    ]


# PUBLIC_INTERFACE
def dump_timeline(steps: Sequence[sla.TimelineStep]) -> List[Dict[str, Any]]:
    """Engine steps to the JSON list stored on the order."""
    return [{"key": s.key, "deadline": _iso(s.deadline), "actual": _iso(s.actual)} for s in steps]


# PUBLIC_INTERFACE
def order_read(order: Order, today: Optional[date] = None) -> OrderRead:
    """OrderRead with per-step display states computed for `today`."""
    today = today or date.today()
    steps = load_timeline(order.timeline)
    states = sla.timeline_states(steps, order.status, today)
    read = OrderRead.model_validate(order)
    read.timeline = [
        TimelineStepRead(key=s.key, deadline=s.deadline, actual=s.actual, state=state)
        for s, state in zip(steps, states)
    ]
    read.overdue = sla.is_overdue(order.due_date, order.status, today)
    read.progress = status_graph.progress_for_status(order.status)
    return read


def _option(edge: status_graph.Edge) -> TransitionOption:
    return TransitionOption(
        target=edge.target,
        label=edge.label,
        direction=edge.direction,
        requires_reason=edge.requires_reason,
        suggested_reason=edge.suggested_reason,
    )


def _generate_order_number(today: date) -> str:
    return f"ORD-{today:%Y%m%d}-{secrets.token_hex(3).upper()}"


class OrderService(BaseService):
    """Order lifecycle: creation, guarded status transitions, priority and SLA timeline."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = OrderRepository(session)
        self.gates = GateRepository(session)
        self.gate_service = GateService(session)

    # PUBLIC_INTERFACE
    async def get_order(self, order_id: UUID) -> Order:
        order = await self.repo.get(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    # PUBLIC_INTERFACE
    async def list_orders(
        self,
        *,
        status_filter: Optional[OrderStatus] = None,
        priority_code: Optional[str] = None,
        customer_name: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Order]:
        return await self.repo.list_orders(
            status=status_filter.value if status_filter else None,
            priority_code=priority_code,
            customer_name=customer_name,
            limit=limit,
            offset=offset,
        )

    # PUBLIC_INTERFACE
    async def create_order(self, payload: OrderCreate, actor: Optional[str]) -> Order:
        """
        Create an order in draft with a projected SLA timeline.

        Parameters:
            payload: order fields; order_number and order_date are optional
            actor: operator recorded on the initial status event
        Returns:
            The persisted order.
        """
        order_date = payload.order_date or date.today()
        order_number = payload.order_number or _generate_order_number(order_date)
        if await self.repo.number_exists(order_number):
            raise DomainError(
                status.HTTP_409_CONFLICT,
                "duplicate_order_number",
                f"Order number {order_number} already exists",
            )

        sla_priority = sla.sla_priority_for(payload.priority_code)
        order = Order(
            order_number=order_number,
            customer_name=payload.customer_name.strip(),
            status=OrderStatus.DRAFT.value,
            priority_code=payload.priority_code.value,
            production_mode=payload.production_mode.value,
            work_type_code=payload.work_type_code,
            total_amount=payload.total_amount,
            paid_amount=payload.paid_amount,
            ordered_qty=payload.ordered_qty,
            produced_qty=0,
            order_date=order_date,
            due_date=payload.due_date,
            sla_priority=sla_priority.value,
            timeline=dump_timeline(sla.project(order_date, sla_priority)),
            notes=payload.notes,
        )
        await self.repo.add(order)
        await self.repo.flush()
        await self.repo.add(
            OrderStatusEvent(
                order_id=order.id,
                from_status=None,
                to_status=OrderStatus.DRAFT.value,
                direction=TransitionDirection.FORWARD.value,
                label="Order created",
                changed_by=actor,
            )
        )
        await self.commit()
        logger.info("Created order %s (%s) for %s", order.order_number, order.id, order.customer_name)
        await self.publish(
            "order.created",
            order.id,
            {"order_number": order.order_number, "status": order.status, "priority_code": order.priority_code},
        )
        return order

    # PUBLIC_INTERFACE
    async def available_transitions(self, order_id: UUID) -> AvailableTransitions:
        """Forward and backward options from the order's status, with the production gate state."""
        order = await self.get_order(order_id)
        options = status_graph.available_transitions(order.status)
        summary = approval_gates.summarize(await self.gates.list_for_order(order_id))
        return AvailableTransitions(
            status=order.status,
            phase=status_graph.phase_for_status(order.status),
            forward=[_option(e) for e in options["forward"]],
            backward=[_option(e) for e in options["backward"]],
            production_unlocked=summary.production_unlocked,
            blocking_gates=summary.blocking_gates,
        )

    # PUBLIC_INTERFACE
    async def transition(
        self,
        order_id: UUID,
        payload: TransitionRequest,
        actor: Optional[str],
    ) -> Tuple[Order, OrderStatusEvent, List[str], List[str]]:
        """
        Validate and apply a status move.

        The engine decides legality; entering production from a pre-production
        status also needs every mandatory gate cleared. The status change, the
        timeline progress, the gates opened by the new status, the gates a
        rollback sends back to pending and the audit event are persisted in one
        commit.

        Parameters:
            order_id: order to move
            payload: target status, reason and optional expected_version
            actor: operator recorded on the audit event
        Returns:
            (order, event, opened gate types, reopened gate types)
        Raises:
            DomainError: engine rejection, production_locked or version_conflict.
        """
        order = await self.get_order(order_id)
        if payload.expected_version is not None and payload.expected_version != order.version:
            raise VersionConflictError(payload.expected_version, order.version)

        current = OrderStatus(order.status)
        result = status_graph.transition(current, payload.target, payload.reason)
        if isinstance(result, Rejected):
            logger.warning(
                "Order %s transition %s -> %s rejected: %s",
                order.order_number, current.value, payload.target.value, result.error.value,
            )
            raise_for_rejection(result)

        if payload.target == OrderStatus.IN_PRODUCTION and current in status_graph.PRE_PRODUCTION_STATUSES:
            summary = approval_gates.summarize(await self.gates.list_for_order(order_id))
            if not summary.production_unlocked:
                raise DomainError(
                    status.HTTP_409_CONFLICT,
                    "production_locked",
                    "Production cannot start until all mandatory gates are cleared: "
                    + ", ".join(summary.blocking_gate_names),
                    details={
                        "blocking_gates": summary.blocking_gates,
                        "blocking_gate_names": summary.blocking_gate_names,
                    },
                )

        target = OrderStatus(result.status)
        order.status = target.value
        order.timeline = dump_timeline(
            sla.record_progress(load_timeline(order.timeline), target, date.today())
        )
        opened = await self.gate_service.ensure_gates_for_status(order.id, target)
        reopened = await self.gate_service.reopen_gates_for_status(order.id, target, result.direction)
        event = OrderStatusEvent(
            order_id=order.id,
            from_status=current.value,
            to_status=target.value,
            direction=result.direction.value,
            label=result.label,
            reason=result.reason,
            changed_by=actor,
        )
        await self.repo.add(event)
        await self.commit()

        logger.info(
            "Order %s moved %s -> %s (%s) by %s",
            order.order_number, current.value, target.value, result.direction.value, actor or "-",
        )
        await self.publish(
            "order.status_changed",
            order.id,
            {
                "order_number": order.order_number,
                "from_status": current.value,
                "to_status": target.value,
                "direction": result.direction.value,
                "reason": result.reason,
                "version": order.version,
                "opened_gates": opened,
                "reopened_gates": reopened,
            },
        )
        return order, event, opened, reopened

    # PUBLIC_INTERFACE
    async def update_priority(self, order_id: UUID, payload: PriorityUpdate) -> Order:
        """Change priority and re-project the timeline, keeping recorded actual dates."""
        order = await self.get_order(order_id)
        if payload.expected_version is not None and payload.expected_version != order.version:
            raise VersionConflictError(payload.expected_version, order.version)
        if OrderStatus(order.status) in status_graph.TERMINAL_STATUSES:
            raise DomainError(
                status.HTTP_409_CONFLICT,
                "TerminalState",
                f"Order is {order.status}; priority can no longer change",
            )

        sla_priority = sla.sla_priority_for(payload.priority_code)
        order.priority_code = payload.priority_code.value
        order.sla_priority = sla_priority.value
        order.timeline = dump_timeline(
            sla.reproject(order.order_date, sla_priority, load_timeline(order.timeline))
        )
        await self.commit()
        logger.info("Order %s priority set to %s", order.order_number, order.priority_code)
        await self.publish(
            "order.priority_changed",
            order.id,
            {"priority_code": order.priority_code, "sla_priority": order.sla_priority, "version": order.version},
        )
        return order

    # PUBLIC_INTERFACE
    async def record_production(self, order_id: UUID, payload: ProductionUpdate) -> Order:
        """
        Record how many units are finished.

        Parameters:
            order_id: order being produced
            payload: produced_qty and the optional expected_version
        Returns:
            The updated order.
        Raises:
            VersionConflictError: expected_version is stale.
            DomainError: order is completed or cancelled (409), or more units are
                reported than were ordered (422).
        """
        order = await self.get_order(order_id)
        if payload.expected_version is not None and payload.expected_version != order.version:
            raise VersionConflictError(payload.expected_version, order.version)
        if OrderStatus(order.status) in status_graph.TERMINAL_STATUSES:
            raise_for_rejection(
                Rejected(EngineError.TERMINAL_STATE, f"Order is {order.status}; production can no longer be recorded")
            )
        if order.ordered_qty > 0 and payload.produced_qty > order.ordered_qty:
            raise_for_rejection(
                Rejected(
                    EngineError.INVALID_QUANTITY,
                    f"produced_qty {payload.produced_qty} exceeds ordered_qty {order.ordered_qty}",
                )
            )

        order.produced_qty = payload.produced_qty
        await self.commit()
        logger.info("Order %s produced %d/%d", order.order_number, order.produced_qty, order.ordered_qty)
        await self.publish(
            "order.production_recorded",
            order.id,
            {"produced_qty": order.produced_qty, "ordered_qty": order.ordered_qty, "version": order.version},
        )
        return order

    # PUBLIC_INTERFACE
    async def timeline(self, order_id: UUID, as_of: Optional[date] = None) -> TimelineRead:
        """SLA timeline with step states evaluated on `as_of` (default today)."""
        order = await self.get_order(order_id)
        today = as_of or date.today()
        steps = load_timeline(order.timeline)
        states = sla.timeline_states(steps, order.status, today)
        return TimelineRead(
            order_id=order.id,
            status=order.status,
            sla_priority=order.sla_priority,
            as_of=today,
            current_step_index=sla.step_index_for_status(order.status),
            on_track=sla.on_track(steps, order.status, today),
            estimated_days=sla.estimated_days(order.order_date, steps),
            steps=[
                TimelineStepRead(key=s.key, deadline=s.deadline, actual=s.actual, state=state)
                for s, state in zip(steps, states)
            ],
        )

    # PUBLIC_INTERFACE
    async def status_events(self, order_id: UUID) -> List[OrderStatusEvent]:
        """Audit log of the order's status changes, oldest first."""
        await self.get_order(order_id)
        return await self.repo.list_status_events(order_id)
