"""
Change request pricing and impact classification.

A customer-initiated change is priced from the rate table of the production
phase the order is in: the further production has progressed, the dearer and
more disruptive the change. The rate table is injected at construction so
alternate tariffs can be used without touching module state.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Mapping, Optional, Tuple, Union

from src.engine.enums import (
    ChangeCategory,
    ChangeRequestStatus,
    ChangeType,
    ImpactLevel,
    OrderPhase,
    TransitionDirection,
)
from src.engine.results import Accepted, EngineError, Rejected, TransitionResult

RUSH_SURCHARGE_RATE = 0.5

DEFAULT_IMPACT_LEVEL = ImpactLevel.MEDIUM


@dataclass(frozen=True)
class PhaseFeeRates:
    """Flat fees (currency units) and percentages of order value for one phase."""
    name: str
    design_revision_fee: float = 0.0
    quantity_change_percent: float = 0.0
    size_color_change_fee: float = 0.0
    add_work_percent: float = 0.0
    remove_work_penalty_percent: float = 0.0
    cancel_penalty_percent: float = 0.0
    notes: str = ""


DEFAULT_PHASE_RATES: Mapping[OrderPhase, PhaseFeeRates] = MappingProxyType({
    OrderPhase.DRAFT: PhaseFeeRates(
        name="Draft",
        notes="Every change is free",
    ),
    OrderPhase.DESIGN: PhaseFeeRates(
        name="Design",
        cancel_penalty_percent=10,
        notes="Design revisions free within the revision limit",
    ),
    OrderPhase.MOCKUP_APPROVED: PhaseFeeRates(
        name="Mockup Approved",
        design_revision_fee=200,
        size_color_change_fee=100,
        remove_work_penalty_percent=10,
        cancel_penalty_percent=20,
        notes="Changes start to carry a fee",
    ),
    OrderPhase.PRE_PRODUCTION: PhaseFeeRates(
        name="Pre-Production",
        design_revision_fee=300,
        quantity_change_percent=5,
        size_color_change_fee=200,
        add_work_percent=10,
        remove_work_penalty_percent=20,
        cancel_penalty_percent=30,
        notes="Material already ordered",
    ),
    OrderPhase.IN_PRODUCTION: PhaseFeeRates(
        name="In Production",
        design_revision_fee=500,
        quantity_change_percent=10,
        size_color_change_fee=500,
        add_work_percent=20,
        remove_work_penalty_percent=50,
        cancel_penalty_percent=50,
        notes="Part of the order already produced",
    ),
    OrderPhase.QC_COMPLETE: PhaseFeeRates(
        name="QC Complete",
        remove_work_penalty_percent=100,
        cancel_penalty_percent=80,
        notes="Production finished",
    ),
})

_NO_RATES = PhaseFeeRates(name="Unpriced")


@dataclass(frozen=True)
class FeeOptions:
    """Optional inputs of a fee calculation."""
    quantity_change: int = 0
    waste_qty: Optional[float] = None
    waste_unit_cost: Optional[float] = None
    is_rush: bool = False


@dataclass(frozen=True)
class FeeBreakdown:
    base_fee: float = 0.0
    design_fee: float = 0.0
    rework_fee: float = 0.0
    material_fee: float = 0.0
    waste_fee: float = 0.0
    rush_fee: float = 0.0
    other_fee: float = 0.0
    discount: float = 0.0
    total_fee: float = 0.0

    @property
    def gross(self) -> float:
        """Every positive component, before the discount."""
        return (
            self.base_fee
            + self.design_fee
            + self.rework_fee
            + self.material_fee
            + self.waste_fee
            + self.rush_fee
            + self.other_fee
        )

    def adjusted(self, other_fee: float = 0.0, discount: float = 0.0) -> Union["FeeBreakdown", Rejected]:
        """
        Apply the manual quoting step: an extra fee and a discount.

        The total stays the sum of the positive components minus the discount.
        """
        if other_fee < 0 or discount < 0:
            return Rejected(EngineError.INVALID_QUANTITY, "Other fee and discount must not be negative")
        updated = replace(self, other_fee=other_fee, discount=discount)
        if discount > updated.gross:
            return Rejected(EngineError.INVALID_QUANTITY, "Discount exceeds the quoted fees")
        return replace(updated, total_fee=updated.gross - discount)


class ChangeFeeCalculator:
    """Prices change requests against a phase rate table."""

    def __init__(self, rates: Mapping[OrderPhase, PhaseFeeRates] = DEFAULT_PHASE_RATES) -> None:
        self.rates = rates

    def rates_for(self, phase: Union[OrderPhase, str]) -> PhaseFeeRates:
        return self.rates.get(OrderPhase(phase), _NO_RATES)

    # PUBLIC_INTERFACE
    def calculate_fees(
        self,
        phase: Union[OrderPhase, str],
        change_type: Union[ChangeType, str],
        base_amount: float,
        options: Optional[FeeOptions] = None,
    ) -> Union[FeeBreakdown, Rejected]:
        """
        Compute the fee breakdown of one change request.

        Parameters:
            phase: production phase of the order when the change was filed
            change_type: the single kind of change requested
            base_amount: order value the percentage fees apply to
            options: quantity delta, waste quantity/unit cost, rush flag
        Returns:
            FeeBreakdown (other_fee and discount zero), or Rejected with
            InvalidQuantity for negative amounts.
        """
        opts = options or FeeOptions()
        if base_amount < 0:
            return Rejected(EngineError.INVALID_QUANTITY, "Base amount must not be negative")
        if (opts.waste_qty is not None and opts.waste_qty < 0) or (
            opts.waste_unit_cost is not None and opts.waste_unit_cost < 0
        ):
            return Rejected(EngineError.INVALID_QUANTITY, "Waste quantity and unit cost must not be negative")

        rates = self.rates_for(phase)
        kind = ChangeType(change_type)
        base_fee = design_fee = material_fee = 0.0

        if kind == ChangeType.DESIGN_REVISION:
            design_fee = rates.design_revision_fee
        elif kind == ChangeType.QUANTITY_CHANGE:
            if opts.quantity_change > 0:
                material_fee = base_amount * rates.quantity_change_percent / 100
        elif kind in (ChangeType.SIZE_CHANGE, ChangeType.COLOR_CHANGE):
            base_fee = rates.size_color_change_fee
        elif kind == ChangeType.ADD_WORK:
            base_fee = base_amount * rates.add_work_percent / 100
        elif kind == ChangeType.REMOVE_WORK:
            base_fee = base_amount * rates.remove_work_penalty_percent / 100
        elif kind == ChangeType.CANCEL:
            base_fee = base_amount * rates.cancel_penalty_percent / 100
        # remaining change types are priced manually when quoting

        waste_fee = 0.0
        if opts.waste_qty is not None and opts.waste_unit_cost is not None:
            waste_fee = opts.waste_qty * opts.waste_unit_cost

        rework_fee = 0.0
        subtotal = base_fee + design_fee + rework_fee + material_fee + waste_fee
        rush_fee = subtotal * RUSH_SURCHARGE_RATE if opts.is_rush else 0.0

        return FeeBreakdown(
            base_fee=base_fee,
            design_fee=design_fee,
            rework_fee=rework_fee,
            material_fee=material_fee,
            waste_fee=waste_fee,
            rush_fee=rush_fee,
            total_fee=subtotal + rush_fee,
        )

    # PUBLIC_INTERFACE
    def get_impact_level(
        self,
        phase: Union[OrderPhase, str],
        production_started: bool,
        affects_schedule: bool,
    ) -> ImpactLevel:
        """Classify how disruptive a change is; see get_impact_level."""
        return get_impact_level(phase, production_started, affects_schedule)


# PUBLIC_INTERFACE
def get_impact_level(
    phase: Union[OrderPhase, str],
    production_started: bool,
    affects_schedule: bool,
) -> ImpactLevel:
    """
    Impact of a change as a pure function of phase, production start and schedule effect.

    Any phase/condition combination without its own rule (including phases
    outside OrderPhase) resolves to DEFAULT_IMPACT_LEVEL.
    """
    try:
        p = OrderPhase(phase)
    except ValueError:
        return DEFAULT_IMPACT_LEVEL

    if p == OrderPhase.DRAFT:
        return ImpactLevel.NONE
    if p == OrderPhase.DESIGN:
        return ImpactLevel.LOW
    if p == OrderPhase.MOCKUP_APPROVED and not production_started:
        return ImpactLevel.LOW
    if p == OrderPhase.PRE_PRODUCTION:
        return ImpactLevel.MEDIUM if affects_schedule else ImpactLevel.LOW
    if p == OrderPhase.IN_PRODUCTION:
        return ImpactLevel.HIGH if production_started else ImpactLevel.MEDIUM
    if p == OrderPhase.QC_COMPLETE:
        return ImpactLevel.CRITICAL
    return DEFAULT_IMPACT_LEVEL


_MAJOR_CHANGES = frozenset({ChangeType.CANCEL, ChangeType.MATERIAL_CHANGE, ChangeType.REMOVE_WORK})
_MINOR_CHANGES = frozenset({ChangeType.DESIGN_REVISION, ChangeType.DUE_DATE_CHANGE})


# PUBLIC_INTERFACE
def determine_change_category(
    change_type: Union[ChangeType, str],
    phase: Union[OrderPhase, str],
    produced_qty: int = 0,
    ordered_qty: int = 0,
) -> ChangeCategory:
    """Rough severity bucket used to triage incoming change requests."""
    kind = ChangeType(change_type)
    p = OrderPhase(phase)
    if ordered_qty > 0 and produced_qty > ordered_qty * 0.5:
        return ChangeCategory.CRITICAL
    if kind in _MAJOR_CHANGES and p != OrderPhase.DRAFT:
        return ChangeCategory.MAJOR
    if kind in _MINOR_CHANGES or p == OrderPhase.DRAFT:
        return ChangeCategory.MINOR
    return ChangeCategory.MAJOR


MATERIAL_WASTE_COST_PER_UNIT = 50.0
MID_PRODUCTION_DELAY_DAYS = 3
CRITICAL_WASTE_COST = 1000.0

_REWORK_CHANGES = frozenset({ChangeType.DESIGN_REVISION, ChangeType.COLOR_CHANGE})
_REDUCING_CHANGES = frozenset({ChangeType.REMOVE_WORK, ChangeType.CANCEL})


@dataclass(frozen=True)
class ImpactContext:
    """What is already done on the order when the change arrives."""
    produced_qty: int = 0
    ordered_qty: int = 0
    materials_ordered: bool = False
    materials_received: bool = False
    designs_approved: bool = False
    quantity_change: int = 0


@dataclass(frozen=True)
class ChangeImpact:
    """Production consequences of a change: waste, rework and delay."""
    production_already_started: bool
    produced_qty: int
    waste_qty: int
    materials_ordered: bool
    materials_received: bool
    material_waste_cost: float
    designs_approved: bool
    design_rework_required: bool
    affects_due_date: bool
    delay_days: int
    severity: ImpactLevel


# PUBLIC_INTERFACE
def analyze_impact(
    change_type: Union[ChangeType, str],
    phase: Union[OrderPhase, str],
    context: Optional[ImpactContext] = None,
) -> ChangeImpact:
    """
    Estimate waste, rework and delay caused by a change.

    Reworking the design or colours scraps what was already produced; removing
    work, cancelling or lowering the quantity scraps the produced units and, once
    material is in, costs MATERIAL_WASTE_COST_PER_UNIT per produced unit. A change
    in the middle of production delays the due date by MID_PRODUCTION_DELAY_DAYS.

    Parameters:
        change_type: the change requested
        phase: production phase the order is in
        context: produced/ordered quantities and material and design state
    Returns:
        ChangeImpact; severity is critical when more than half the order or
        more than CRITICAL_WASTE_COST of material is wasted.
    """
    ctx = context or ImpactContext()
    kind = ChangeType(change_type)
    produced = max(ctx.produced_qty, 0)
    waste_qty = 0
    waste_cost = 0.0
    rework = False

    if kind in _REWORK_CHANGES:
        rework = ctx.designs_approved
        waste_qty = produced
    reducing = kind in _REDUCING_CHANGES or (kind == ChangeType.QUANTITY_CHANGE and ctx.quantity_change < 0)
    if reducing:
        waste_qty = produced
        if ctx.materials_received:
            waste_cost = produced * MATERIAL_WASTE_COST_PER_UNIT

    delayed = OrderPhase(phase) == OrderPhase.IN_PRODUCTION and produced > 0

    if waste_qty > ctx.ordered_qty * 0.5 or waste_cost > CRITICAL_WASTE_COST:
        severity = ImpactLevel.CRITICAL
    elif waste_qty > 0 or rework:
        severity = ImpactLevel.HIGH
    elif delayed or ctx.materials_ordered:
        severity = ImpactLevel.MEDIUM
    else:
        severity = ImpactLevel.LOW

    return ChangeImpact(
        production_already_started=produced > 0,
        produced_qty=produced,
        waste_qty=waste_qty,
        materials_ordered=ctx.materials_ordered,
        materials_received=ctx.materials_received,
        material_waste_cost=waste_cost,
        designs_approved=ctx.designs_approved,
        design_rework_required=rework,
        affects_due_date=delayed,
        delay_days=MID_PRODUCTION_DELAY_DAYS if delayed else 0,
        severity=severity,
    )


CR = ChangeRequestStatus

FINAL_CHANGE_REQUEST_STATUSES = frozenset({CR.COMPLETED, CR.CANCELLED, CR.REJECTED})

CHANGE_REQUEST_TRANSITIONS: Mapping[ChangeRequestStatus, Tuple[ChangeRequestStatus, ...]] = MappingProxyType({
    CR.PENDING_QUOTE: (CR.AWAITING_CUSTOMER, CR.CANCELLED, CR.REJECTED),
    CR.AWAITING_CUSTOMER: (CR.AWAITING_PAYMENT, CR.IN_PROGRESS, CR.CANCELLED, CR.REJECTED),
    CR.AWAITING_PAYMENT: (CR.IN_PROGRESS, CR.CANCELLED, CR.REJECTED),
    CR.IN_PROGRESS: (CR.COMPLETED, CR.CANCELLED, CR.REJECTED),
    CR.COMPLETED: (),
    CR.CANCELLED: (),
    CR.REJECTED: (),
})


# PUBLIC_INTERFACE
def change_request_transition(
    current: Union[ChangeRequestStatus, str],
    target: Union[ChangeRequestStatus, str],
) -> TransitionResult:
    """Validate a change request status move along its quoting workflow."""
    cur = ChangeRequestStatus(current)
    tgt = ChangeRequestStatus(target)
    if cur in FINAL_CHANGE_REQUEST_STATUSES:
        return Rejected(EngineError.TERMINAL_STATE, f"Change request is already {cur.value}")
    if tgt not in CHANGE_REQUEST_TRANSITIONS[cur]:
        return Rejected(
            EngineError.ILLEGAL_TRANSITION,
            f"Cannot move change request from {cur.value} to {tgt.value}",
        )
    direction = (
        TransitionDirection.BACKWARD
        if tgt in (CR.CANCELLED, CR.REJECTED)
        else TransitionDirection.FORWARD
    )
    return Accepted(status=tgt.value, direction=direction, label=f"Change request {tgt.value}")
