from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import DomainError, NotFoundError, raise_for_rejection
from src.db.models.gates import ApprovalGate
from src.db.models.orders import Order
from src.engine import approval_gates
from src.engine.approval_gates import DEFAULT_GATES, GATES_OPENED_BY_STATUS, GatesSummary
from src.engine.enums import GateStatus, GateType, OrderStatus, TransitionDirection
from src.engine.results import EngineError, Rejected
from src.repositories.gates import GateRepository
from src.repositories.orders import OrderRepository
from src.schemas.gates import GateCreate, GateProgressRead, GateRead, GatesSummaryRead, GateUpdate
from src.services.base import BaseService

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def gate_read(gate: ApprovalGate) -> GateRead:
    """GateRead with the derived item progress filled in."""
    read = GateRead.model_validate(gate)
    read.progress_percent = approval_gates.progress_percent(gate.approved_items, gate.total_items)
    return read


def summary_read(order_id: UUID, summary: GatesSummary) -> GatesSummaryRead:
    return GatesSummaryRead(
        order_id=order_id,
        production_unlocked=summary.production_unlocked,
        blocking_gates=summary.blocking_gates,
        blocking_gate_names=summary.blocking_gate_names,
        gates=[
            GateProgressRead(
                gate_type=g.gate_type,
                name=g.name,
                status=g.status,
                cleared=g.cleared,
                progress_percent=g.progress_percent,
            )
            for g in summary.gates
        ],
        design_approved=summary.design_approved,
        mockup_approved=summary.mockup_approved,
        material_ready=summary.material_ready,
        payment_confirmed=summary.payment_confirmed,
    )


class GateService(BaseService):
    """Approval gate workflow: opening gates, moving them through their lifecycle, summarising."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = GateRepository(session)
        self.orders = OrderRepository(session)

    async def _order(self, order_id: UUID) -> Order:
        order = await self.orders.get(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    def _new_gate(
        self,
        order_id: UUID,
        gate_type: GateType,
        *,
        gate_name: Optional[str] = None,
        is_mandatory: Optional[bool] = None,
        requires_customer_approval: Optional[bool] = None,
        total_items: int = 0,
        notes: Optional[str] = None,
    ) -> ApprovalGate:
        defaults = DEFAULT_GATES[gate_type]
        return ApprovalGate(
            order_id=order_id,
            gate_type=gate_type.value,
            gate_name=gate_name or defaults.name,
            status=GateStatus.PENDING.value,
            is_mandatory=defaults.is_mandatory if is_mandatory is None else is_mandatory,
            requires_customer_approval=(
                defaults.requires_customer_approval
                if requires_customer_approval is None
                else requires_customer_approval
            ),
            customer_confirmed=False,
            approved_items=0,
            total_items=total_items,
            notes=notes,
        )

    # PUBLIC_INTERFACE
    async def ensure_gates_for_status(self, order_id: UUID, order_status: OrderStatus) -> List[str]:
        """
        Create the gates an order needs on entering a status, skipping existing ones.

        Does not commit; the caller persists them with the status change.
        Returns:
            Gate types created.
        """
        opened: List[str] = []
        for gate_type in GATES_OPENED_BY_STATUS.get(order_status, ()):
            if await self.repo.get_by_type(order_id, gate_type.value) is None:
                await self.repo.add(self._new_gate(order_id, gate_type))
                opened.append(gate_type.value)
        if opened:
            logger.info("Opened gates %s for order %s on entering %s", opened, order_id, order_status.value)
        return opened

    # PUBLIC_INTERFACE
    async def reopen_gates_for_status(
        self, order_id: UUID, order_status: OrderStatus, direction: TransitionDirection
    ) -> List[str]:
        """
        Reset to pending the gates a rollback into `order_status` invalidates.

        Approval and customer confirmation are cleared; item counts and notes stay.
        Does not commit.
        Returns:
            Gate types reopened.
        """
        reopened: List[str] = []
        for gate_type in approval_gates.gates_reopened_by(order_status, direction):
            gate = await self.repo.get_by_type(order_id, gate_type.value)
            if gate is None or gate.status == GateStatus.PENDING.value:
                continue
            gate.status = GateStatus.PENDING.value
            gate.approved_by = None
            gate.approved_at = None
            gate.customer_confirmed = False
            gate.customer_confirmed_at = None
            reopened.append(gate_type.value)
        if reopened:
            logger.info("Reopened gates %s for order %s on rollback to %s", reopened, order_id, order_status.value)
        return reopened

    # PUBLIC_INTERFACE
    async def list_gates(self, order_id: UUID) -> List[ApprovalGate]:
        await self._order(order_id)
        gates = await self.repo.list_for_order(order_id)
        return sorted(gates, key=lambda g: approval_gates.GATE_ORDER.index(GateType(g.gate_type)))

    # PUBLIC_INTERFACE
    async def summarize(self, order_id: UUID) -> GatesSummary:
        """Engine summary of the order's gates (production_unlocked, blocking gates)."""
        await self._order(order_id)
        return approval_gates.summarize(await self.repo.list_for_order(order_id))

    # PUBLIC_INTERFACE
    async def open_gate(self, order_id: UUID, payload: GateCreate) -> ApprovalGate:
        """Open a gate by hand, e.g. production_start or a gate the workflow has not reached."""
        await self._order(order_id)
        if await self.repo.get_by_type(order_id, payload.gate_type.value) is not None:
            raise DomainError(
                status.HTTP_409_CONFLICT,
                "gate_exists",
                f"Order already has a {payload.gate_type.value} gate",
            )
        gate = self._new_gate(
            order_id,
            payload.gate_type,
            gate_name=payload.gate_name,
            is_mandatory=payload.is_mandatory,
            requires_customer_approval=payload.requires_customer_approval,
            total_items=payload.total_items,
            notes=payload.notes,
        )
        await self.repo.add(gate)
        await self.commit()
        await self._publish_gate(gate)
        return gate

    # PUBLIC_INTERFACE
    async def update_gate(self, gate_id: UUID, payload: GateUpdate, actor: Optional[str]) -> ApprovalGate:
        """
        Apply a partial gate update.

        Parameters:
            gate_id: gate to update
            payload: status move, item progress, customer confirmation, notes
            actor: operator recorded as approver
        Raises:
            DomainError: illegal lifecycle move (409) or approved items above total (422).
        """
        gate = await self.repo.get(gate_id)
        if gate is None:
            raise NotFoundError("Gate", gate_id)
        now = datetime.now(tz=timezone.utc)

        if payload.status is not None and payload.status.value != gate.status:
            result = approval_gates.gate_transition(gate.status, payload.status)
            if isinstance(result, Rejected):
                logger.warning("Gate %s move rejected: %s", gate_id, result.message)
                raise_for_rejection(result)
            gate.status = result.status
            if payload.status == GateStatus.APPROVED:
                gate.approved_by = actor
                gate.approved_at = now
            elif payload.status == GateStatus.REJECTED:
                gate.rejection_reason = payload.rejection_reason
            else:
                gate.approved_by = None
                gate.approved_at = None

        approved_items = gate.approved_items if payload.approved_items is None else payload.approved_items
        total_items = gate.total_items if payload.total_items is None else payload.total_items
        if total_items > 0 and approved_items > total_items:
            raise_for_rejection(
                Rejected(
                    EngineError.INVALID_QUANTITY,
                    f"Approved items ({approved_items}) exceed total items ({total_items})",
                )
            )
        gate.approved_items = approved_items
        gate.total_items = total_items

        if payload.customer_confirmed is not None:
            gate.customer_confirmed = payload.customer_confirmed
            gate.customer_confirmed_at = now if payload.customer_confirmed else None
        if payload.notes is not None:
            gate.notes = payload.notes

        await self.commit()
        await self._publish_gate(gate)
        return gate

    async def _publish_gate(self, gate: ApprovalGate) -> None:
        summary = approval_gates.summarize(await self.repo.list_for_order(gate.order_id))
        await self.publish(
            "gate.updated",
            gate.order_id,
            {
                "gate_id": str(gate.id),
                "gate_type": gate.gate_type,
                "status": gate.status,
                "customer_confirmed": gate.customer_confirmed,
                "production_unlocked": summary.production_unlocked,
                "blocking_gates": summary.blocking_gates,
            },
        )
