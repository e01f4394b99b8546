"""
Approval gate aggregation.

Production may only start once every mandatory gate has cleared. Gates that
need the customer's sign-off clear only when both approved and confirmed by
the customer.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Tuple, Union

from src.engine.enums import GateStatus, GateType, OrderStatus, TransitionDirection
from src.engine.numbers import percent
from src.engine.results import Accepted, EngineError, Rejected, TransitionResult

GATE_ORDER: Tuple[GateType, ...] = tuple(GateType)


@dataclass(frozen=True)
class GateDefaults:
    """Template used when the workflow opens a gate for an order."""
    name: str
    is_mandatory: bool = True
    requires_customer_approval: bool = False


DEFAULT_GATES: Mapping[GateType, GateDefaults] = MappingProxyType({
    GateType.DESIGN: GateDefaults("Design Approval", requires_customer_approval=True),
    GateType.MOCKUP: GateDefaults("Mockup Approval", requires_customer_approval=True),
    GateType.MATERIAL: GateDefaults("Material Ready"),
    GateType.PAYMENT: GateDefaults("Payment Confirmed"),
    GateType.PRODUCTION_START: GateDefaults("Production Start"),
})

# Gates created when an order enters a status.
GATES_OPENED_BY_STATUS: Mapping[OrderStatus, Tuple[GateType, ...]] = MappingProxyType({
    OrderStatus.AWAITING_PAYMENT: (GateType.PAYMENT,),
    OrderStatus.DESIGNING: (GateType.DESIGN, GateType.MOCKUP),
    OrderStatus.AWAITING_MATERIAL: (GateType.MATERIAL,),
})

GATE_TRANSITIONS: Mapping[GateStatus, Tuple[GateStatus, ...]] = MappingProxyType({
    GateStatus.PENDING: (GateStatus.IN_PROGRESS,),
    GateStatus.IN_PROGRESS: (GateStatus.APPROVED, GateStatus.REJECTED),
    GateStatus.REJECTED: (GateStatus.IN_PROGRESS,),
    GateStatus.APPROVED: (),
})


@dataclass(frozen=True)
class GateState:
    """The fields of an approval gate the aggregator reads."""
    gate_type: GateType
    status: GateStatus = GateStatus.PENDING
    is_mandatory: bool = True
    requires_customer_approval: bool = False
    customer_confirmed: bool = False
    approved_items: int = 0
    total_items: int = 0
    gate_name: Optional[str] = None

    @classmethod
    def from_record(cls, record) -> "GateState":
        """Build from any object exposing gate attributes (ORM row, schema)."""
        return cls(
            gate_type=GateType(record.gate_type),
            status=GateStatus(record.status),
            is_mandatory=bool(record.is_mandatory),
            requires_customer_approval=bool(record.requires_customer_approval),
            customer_confirmed=bool(record.customer_confirmed),
            approved_items=record.approved_items or 0,
            total_items=record.total_items or 0,
            gate_name=getattr(record, "gate_name", None),
        )

    @property
    def display_name(self) -> str:
        return self.gate_name or DEFAULT_GATES[self.gate_type].name


@dataclass(frozen=True)
class GateProgress:
    gate_type: GateType
    name: str
    status: GateStatus
    cleared: bool
    progress_percent: Optional[int]


@dataclass(frozen=True)
class GatesSummary:
    production_unlocked: bool
    blocking_gates: List[str] = field(default_factory=list)
    blocking_gate_names: List[str] = field(default_factory=list)
    gates: List[GateProgress] = field(default_factory=list)
    design_approved: bool = False
    mockup_approved: bool = False
    material_ready: bool = False
    payment_confirmed: bool = False


# PUBLIC_INTERFACE
def gates_reopened_by(
    target: Union[OrderStatus, str], direction: Union[TransitionDirection, str]
) -> Tuple[GateType, ...]:
    """
    Gates to send back to pending when an order moves to `target`.

    Rolling an order back into a status that opens gates means the work those
    gates approved is being redone, so they must be cleared again. Forward moves
    reopen nothing.
    """
    if TransitionDirection(direction) != TransitionDirection.BACKWARD:
        return ()
    return GATES_OPENED_BY_STATUS.get(OrderStatus(target), ())


# PUBLIC_INTERFACE
def is_cleared(gate: GateState) -> bool:
    """Approved, and confirmed by the customer when the gate needs it."""
    if gate.status != GateStatus.APPROVED:
        return False
    if gate.requires_customer_approval and not gate.customer_confirmed:
        return False
    return True


# PUBLIC_INTERFACE
def progress_percent(approved_items: int, total_items: int) -> Optional[int]:
    """Item progress of a gate, or None when the gate has no items to count."""
    if total_items <= 0:
        return None
    return percent(approved_items, total_items)


def _canonical(gates: Iterable[GateState]) -> List[GateState]:
    return sorted(gates, key=lambda g: GATE_ORDER.index(g.gate_type))


# PUBLIC_INTERFACE
def summarize(gates: Iterable[Union[GateState, object]]) -> GatesSummary:
    """
    Aggregate the gates of one order.

    Parameters:
        gates: GateState values or records with the same attributes, in any order
    Returns:
        GatesSummary with production_unlocked, the blocking gate types in
        canonical order, their display names and per-gate progress.
    """
    states = _canonical(
        g if isinstance(g, GateState) else GateState.from_record(g) for g in gates
    )
    blocking = [g for g in states if g.is_mandatory and not is_cleared(g)]
    cleared = {g.gate_type for g in states if is_cleared(g)}

    return GatesSummary(
        production_unlocked=not blocking,
        blocking_gates=[g.gate_type.value for g in blocking],
        blocking_gate_names=[g.display_name for g in blocking],
        gates=[
            GateProgress(
                gate_type=g.gate_type,
                name=g.display_name,
                status=g.status,
                cleared=is_cleared(g),
                progress_percent=progress_percent(g.approved_items, g.total_items),
            )
            for g in states
        ],
        design_approved=GateType.DESIGN in cleared,
        mockup_approved=GateType.MOCKUP in cleared,
        material_ready=GateType.MATERIAL in cleared,
        payment_confirmed=GateType.PAYMENT in cleared,
    )


# PUBLIC_INTERFACE
def gate_transition(current: Union[GateStatus, str], target: Union[GateStatus, str]) -> TransitionResult:
    """Validate a gate status change (pending -> in_progress -> approved|rejected; rejected reopens)."""
    cur = GateStatus(current)
    tgt = GateStatus(target)
    if tgt not in GATE_TRANSITIONS[cur]:
        if not GATE_TRANSITIONS[cur]:
            return Rejected(EngineError.TERMINAL_STATE, f"Gate is already {cur.value}")
        return Rejected(
            EngineError.ILLEGAL_TRANSITION,
            f"Cannot move gate from {cur.value} to {tgt.value}",
        )
    direction = TransitionDirection.BACKWARD if cur == GateStatus.REJECTED else TransitionDirection.FORWARD
    return Accepted(status=tgt.value, direction=direction, label=f"Gate {tgt.value}")
