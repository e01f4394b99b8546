"""
Order status transition graph.

The graph is static data: each status maps to the forward moves it may make
(normal progress, labelled with their business meaning) and the backward moves
it may make (rollbacks, pauses and cancellation), which always need an
auditable reason. Validation returns typed results; nothing here touches
storage.
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple, Union

from src.engine.enums import OrderPhase, OrderStatus, TransitionDirection
from src.engine.results import (
    Accepted,
    EngineError,
    Rejected,
    TransitionResult,
    clean_reason,
)

S = OrderStatus
StatusLike = Union[OrderStatus, str]


@dataclass(frozen=True)
class Edge:
    """One legal move out of a status."""
    target: OrderStatus
    label: str
    direction: TransitionDirection
    suggested_reason: Optional[str] = None

    @property
    def requires_reason(self) -> bool:
        return self.direction == TransitionDirection.BACKWARD


def _fwd(target: OrderStatus, label: str) -> Edge:
    return Edge(target, label, TransitionDirection.FORWARD)


def _back(target: OrderStatus, label: str, suggested_reason: Optional[str] = None) -> Edge:
    return Edge(target, label, TransitionDirection.BACKWARD, suggested_reason)


TERMINAL_STATUSES = frozenset({S.COMPLETED, S.CANCELLED})

# Statuses an order may be paused from.
PAUSABLE_STATUSES = frozenset({
    S.QUOTED,
    S.AWAITING_PAYMENT,
    S.PARTIAL_PAID,
    S.DESIGNING,
    S.AWAITING_MOCKUP_APPROVAL,
    S.AWAITING_MATERIAL,
    S.QUEUED,
    S.IN_PRODUCTION,
    S.QC_PENDING,
    S.READY_TO_SHIP,
})

# Entering in_production from one of these requires every mandatory gate cleared.
PRE_PRODUCTION_STATUSES = frozenset({
    S.AWAITING_MOCKUP_APPROVAL,
    S.AWAITING_MATERIAL,
    S.QUEUED,
    S.ON_HOLD,
})

_PRODUCTION_STARTED = frozenset({
    S.IN_PRODUCTION,
    S.QC_PENDING,
    S.READY_TO_SHIP,
    S.SHIPPED,
    S.COMPLETED,
})


FORWARD_EDGES: Mapping[OrderStatus, Tuple[Edge, ...]] = MappingProxyType({
    S.DRAFT: (
        _fwd(S.QUOTED, "Send quotation"),
        _fwd(S.AWAITING_PAYMENT, "Await payment"),
    ),
    S.QUOTED: (
        _fwd(S.AWAITING_PAYMENT, "Customer confirmed, awaiting payment"),
    ),
    S.AWAITING_PAYMENT: (
        _fwd(S.PARTIAL_PAID, "Deposit received"),
        _fwd(S.DESIGNING, "Paid in full, start design"),
    ),
    S.PARTIAL_PAID: (
        _fwd(S.DESIGNING, "Start design"),
    ),
    S.DESIGNING: (
        _fwd(S.AWAITING_MOCKUP_APPROVAL, "Mockup sent to customer"),
    ),
    S.AWAITING_MOCKUP_APPROVAL: (
        _fwd(S.AWAITING_MATERIAL, "Customer approved, awaiting material"),
        _fwd(S.IN_PRODUCTION, "Customer approved, start production"),
    ),
    S.AWAITING_MATERIAL: (
        _fwd(S.QUEUED, "Material ready, queued"),
        _fwd(S.IN_PRODUCTION, "Material ready, start production"),
    ),
    S.QUEUED: (
        _fwd(S.IN_PRODUCTION, "Start production"),
    ),
    S.IN_PRODUCTION: (
        _fwd(S.QC_PENDING, "Production finished, awaiting QC"),
    ),
    S.QC_PENDING: (
        _fwd(S.READY_TO_SHIP, "QC passed, ready to ship"),
        _fwd(S.IN_PRODUCTION, "QC failed, produce again"),
    ),
    S.READY_TO_SHIP: (
        _fwd(S.SHIPPED, "Shipped"),
    ),
    S.SHIPPED: (
        _fwd(S.COMPLETED, "Customer received goods, completed"),
    ),
    S.ON_HOLD: (
        _fwd(S.AWAITING_PAYMENT, "Resume, awaiting payment"),
        _fwd(S.DESIGNING, "Resume design"),
        _fwd(S.AWAITING_MATERIAL, "Resume, awaiting material"),
        _fwd(S.QUEUED, "Resume, back to queue"),
        _fwd(S.IN_PRODUCTION, "Resume production"),
    ),
    S.COMPLETED: (),
    S.CANCELLED: (),
})


def _rollbacks() -> Dict[OrderStatus, Tuple[Edge, ...]]:
    specific: Dict[OrderStatus, List[Edge]] = {
        S.DRAFT: [],
        S.QUOTED: [
            _back(S.DRAFT, "Back to draft", "Order details need editing"),
        ],
        S.AWAITING_PAYMENT: [
            _back(S.QUOTED, "Back to quotation", "Price or items need editing"),
            _back(S.DRAFT, "Back to draft", "Order details need editing"),
        ],
        S.PARTIAL_PAID: [
            _back(S.AWAITING_PAYMENT, "Back to awaiting payment", "Partial payment voided"),
        ],
        S.DESIGNING: [
            _back(S.AWAITING_PAYMENT, "Back to awaiting payment", "Payment not complete"),
            _back(S.PARTIAL_PAID, "Back to partial paid", "Awaiting further payment"),
        ],
        S.AWAITING_MOCKUP_APPROVAL: [
            _back(S.DESIGNING, "Back to design", "Customer asked for design changes"),
        ],
        S.AWAITING_MATERIAL: [
            _back(S.AWAITING_MOCKUP_APPROVAL, "Back to mockup approval", "Mockup needs changes"),
            _back(S.DESIGNING, "Back to design", "Customer asked for a new design"),
        ],
        S.QUEUED: [
            _back(S.AWAITING_MATERIAL, "Back to awaiting material", "Material not ready"),
            _back(S.DESIGNING, "Back to design", "Customer asked for a new design"),
        ],
        S.IN_PRODUCTION: [
            _back(S.QUEUED, "Back to queue", "Production has to pause"),
            _back(S.DESIGNING, "Back to design", "Customer asked for a new design"),
        ],
        S.QC_PENDING: [
            _back(S.IN_PRODUCTION, "Back to production", "Work failed QC and must be redone"),
        ],
        S.READY_TO_SHIP: [
            _back(S.QC_PENDING, "Back to QC", "Needs another inspection"),
            _back(S.IN_PRODUCTION, "Back to production", "Work must be redone"),
        ],
        S.SHIPPED: [
            _back(S.READY_TO_SHIP, "Back to ready to ship", "Shipment cancelled"),
        ],
        S.COMPLETED: [
            _back(S.SHIPPED, "Back to shipped", "Order not yet received"),
        ],
        S.ON_HOLD: [],
        S.CANCELLED: [],
    }
    for status, edges in specific.items():
        if status in PAUSABLE_STATUSES:
            edges.append(_back(S.ON_HOLD, "Put on hold"))
        if status not in TERMINAL_STATUSES:
            edges.append(_back(S.CANCELLED, "Cancel order"))
    return {status: tuple(edges) for status, edges in specific.items()}


ROLLBACK_EDGES: Mapping[OrderStatus, Tuple[Edge, ...]] = MappingProxyType(_rollbacks())


def _find_edge(current: OrderStatus, target: OrderStatus) -> Optional[Edge]:
    for edge in FORWARD_EDGES[current] + ROLLBACK_EDGES[current]:
        if edge.target == target:
            return edge
    return None


# PUBLIC_INTERFACE
def available_transitions(current: StatusLike) -> Dict[str, Tuple[Edge, ...]]:
    """Return the forward and backward options offered from a status."""
    status = OrderStatus(current)
    return {
        "forward": FORWARD_EDGES[status],
        "backward": ROLLBACK_EDGES[status],
    }


# PUBLIC_INTERFACE
def can_transition(current: StatusLike, target: StatusLike) -> bool:
    """True iff target appears in the forward or backward list of current."""
    return _find_edge(OrderStatus(current), OrderStatus(target)) is not None


# PUBLIC_INTERFACE
def transition(current: StatusLike, target: StatusLike, reason: Optional[str] = None) -> TransitionResult:
    """
    Validate a requested status move.

    Parameters:
        current: status the caller currently holds for the order
        target: requested new status
        reason: justification; mandatory for backward moves (rollback, hold, cancel)
    Returns:
        Accepted with the new status, direction, edge label and cleaned reason,
        or Rejected with IllegalTransition, TerminalState or ReasonRequired.
    """
    cur = OrderStatus(current)
    tgt = OrderStatus(target)
    edge = _find_edge(cur, tgt)

    if cur in TERMINAL_STATUSES and edge is None:
        return Rejected(
            EngineError.TERMINAL_STATE,
            f"Order is {cur.value}; no transition to {tgt.value} is possible",
        )
    if edge is None:
        return Rejected(
            EngineError.ILLEGAL_TRANSITION,
            f"Cannot move order from {cur.value} to {tgt.value}",
        )

    cleaned = clean_reason(reason)
    if edge.requires_reason and cleaned is None:
        return Rejected(
            EngineError.REASON_REQUIRED,
            f"A reason is required to move order from {cur.value} back to {tgt.value}",
        )
    return Accepted(status=tgt.value, direction=edge.direction, label=edge.label, reason=cleaned)


# PUBLIC_INTERFACE
def phase_for_status(status: StatusLike) -> Optional[OrderPhase]:
    """
    Map an order status to the production phase used to price change requests.

    Returns None for on_hold and cancelled, where the phase must come from the caller.
    """
    return _PHASE_BY_STATUS.get(OrderStatus(status))


# PUBLIC_INTERFACE
def production_started(status: StatusLike) -> bool:
    """True once an order has entered production (or gone past it)."""
    return OrderStatus(status) in _PRODUCTION_STARTED


_PHASE_BY_STATUS: Mapping[OrderStatus, OrderPhase] = MappingProxyType({
    S.DRAFT: OrderPhase.DRAFT,
    S.QUOTED: OrderPhase.DRAFT,
    S.AWAITING_PAYMENT: OrderPhase.DESIGN,
    S.PARTIAL_PAID: OrderPhase.DESIGN,
    S.DESIGNING: OrderPhase.DESIGN,
    S.AWAITING_MOCKUP_APPROVAL: OrderPhase.DESIGN,
    S.AWAITING_MATERIAL: OrderPhase.MOCKUP_APPROVED,
    S.QUEUED: OrderPhase.PRE_PRODUCTION,
    S.IN_PRODUCTION: OrderPhase.IN_PRODUCTION,
    S.QC_PENDING: OrderPhase.IN_PRODUCTION,
    S.READY_TO_SHIP: OrderPhase.QC_COMPLETE,
    S.SHIPPED: OrderPhase.QC_COMPLETE,
    S.COMPLETED: OrderPhase.QC_COMPLETE,
})

# Completion percentage shown for an order in each status; paused and
# cancelled orders show no progress.
STATUS_PROGRESS: Mapping[OrderStatus, int] = MappingProxyType({
    S.DRAFT: 5,
    S.QUOTED: 10,
    S.AWAITING_PAYMENT: 15,
    S.PARTIAL_PAID: 20,
    S.DESIGNING: 30,
    S.AWAITING_MOCKUP_APPROVAL: 40,
    S.AWAITING_MATERIAL: 50,
    S.QUEUED: 60,
    S.IN_PRODUCTION: 75,
    S.QC_PENDING: 85,
    S.READY_TO_SHIP: 95,
    S.SHIPPED: 98,
    S.COMPLETED: 100,
    S.CANCELLED: 0,
    S.ON_HOLD: 0,
})


# PUBLIC_INTERFACE
def progress_for_status(status: StatusLike) -> int:
    """Rough completion percentage of an order in `status`."""
    return STATUS_PROGRESS.get(OrderStatus(status), 0)
