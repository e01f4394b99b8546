import itertools
from types import MappingProxyType

import pytest

from src.engine import change_fees
from src.engine.change_fees import (
    DEFAULT_PHASE_RATES,
    ChangeFeeCalculator,
    FeeBreakdown,
    FeeOptions,
    PhaseFeeRates,
)
from src.engine.enums import (
    ChangeCategory,
    ChangeRequestStatus,
    ChangeType,
    ImpactLevel,
    OrderPhase,
    TransitionDirection,
)
from src.engine.results import Accepted, EngineError, Rejected


@pytest.fixture
def calculator():
    rates = dict(DEFAULT_PHASE_RATES)
    rates[OrderPhase.IN_PRODUCTION] = PhaseFeeRates(name="In Production", quantity_change_percent=15)
    return ChangeFeeCalculator(MappingProxyType(rates))


def test_quantity_increase_in_production(calculator):
    fees = calculator.calculate_fees(
        OrderPhase.IN_PRODUCTION,
        ChangeType.QUANTITY_CHANGE,
        10000,
        FeeOptions(quantity_change=5),
    )
    assert fees.material_fee == 1500
    assert fees.rush_fee == 0
    assert fees.total_fee == 1500
    assert fees.other_fee == 0 and fees.discount == 0


def test_quantity_increase_in_production_rush(calculator):
    fees = calculator.calculate_fees(
        OrderPhase.IN_PRODUCTION,
        ChangeType.QUANTITY_CHANGE,
        10000,
        FeeOptions(quantity_change=5, is_rush=True),
    )
    assert fees.rush_fee == 750
    assert fees.total_fee == 2250


def test_quantity_decrease_is_free(calculator):
    fees = calculator.calculate_fees(
        OrderPhase.IN_PRODUCTION, ChangeType.QUANTITY_CHANGE, 10000, FeeOptions(quantity_change=-5)
    )
    assert fees.total_fee == 0


def test_default_table_is_not_mutated_by_substitution(calculator):
    assert DEFAULT_PHASE_RATES[OrderPhase.IN_PRODUCTION].quantity_change_percent == 10
    assert ChangeFeeCalculator().rates_for("in_production").quantity_change_percent == 10


@pytest.mark.parametrize(
    "change_type, field, expected",
    [
        (ChangeType.DESIGN_REVISION, "design_fee", 500),
        (ChangeType.SIZE_CHANGE, "base_fee", 500),
        (ChangeType.COLOR_CHANGE, "base_fee", 500),
        (ChangeType.ADD_WORK, "base_fee", 2000),
        (ChangeType.REMOVE_WORK, "base_fee", 5000),
        (ChangeType.CANCEL, "base_fee", 5000),
        (ChangeType.MATERIAL_CHANGE, "total_fee", 0),
        (ChangeType.SHIPPING_CHANGE, "total_fee", 0),
        (ChangeType.OTHER, "total_fee", 0),
    ],
)
def test_fee_per_change_type_in_production(change_type, field, expected):
    fees = ChangeFeeCalculator().calculate_fees(OrderPhase.IN_PRODUCTION, change_type, 10000)
    assert getattr(fees, field) == expected


def test_draft_changes_are_free():
    for change_type in ChangeType:
        fees = ChangeFeeCalculator().calculate_fees(OrderPhase.DRAFT, change_type, 5000, FeeOptions(quantity_change=10))
        assert fees.total_fee == 0


def test_waste_fee_independent_of_type():
    fees = ChangeFeeCalculator().calculate_fees(
        OrderPhase.DRAFT, ChangeType.OTHER, 0, FeeOptions(waste_qty=4, waste_unit_cost=25)
    )
    assert fees.waste_fee == 100
    assert fees.total_fee == 100

    only_qty = ChangeFeeCalculator().calculate_fees(OrderPhase.DRAFT, ChangeType.OTHER, 0, FeeOptions(waste_qty=4))
    assert only_qty.waste_fee == 0


def test_fees_never_negative_and_rush_is_half_of_the_rest():
    calc = ChangeFeeCalculator()
    for phase, change_type, rush, qty in itertools.product(
        OrderPhase, ChangeType, (False, True), (-3, 0, 7)
    ):
        fees = calc.calculate_fees(
            phase, change_type, 8000, FeeOptions(quantity_change=qty, waste_qty=2, waste_unit_cost=30, is_rush=rush)
        )
        assert isinstance(fees, FeeBreakdown)
        components = [fees.base_fee, fees.design_fee, fees.rework_fee, fees.material_fee, fees.waste_fee]
        assert all(c >= 0 for c in components)
        assert fees.total_fee >= 0
        if rush:
            assert fees.rush_fee == pytest.approx(sum(components) * 0.5)
        else:
            assert fees.rush_fee == 0
        assert fees.total_fee == pytest.approx(sum(components) + fees.rush_fee)


def test_negative_inputs_are_rejected():
    calc = ChangeFeeCalculator()
    negative_base = calc.calculate_fees(OrderPhase.DESIGN, ChangeType.CANCEL, -1)
    assert isinstance(negative_base, Rejected)
    assert negative_base.error == EngineError.INVALID_QUANTITY

    negative_waste = calc.calculate_fees(
        OrderPhase.DESIGN, ChangeType.CANCEL, 100, FeeOptions(waste_qty=-1, waste_unit_cost=2)
    )
    assert isinstance(negative_waste, Rejected)


def test_adjusted_applies_other_fee_and_discount():
    fees = FeeBreakdown(base_fee=1000, rush_fee=500, total_fee=1500)
    adjusted = fees.adjusted(other_fee=200, discount=300)
    assert adjusted.total_fee == 1400
    assert adjusted.other_fee == 200 and adjusted.discount == 300

    assert isinstance(fees.adjusted(discount=2000), Rejected)
    assert isinstance(fees.adjusted(other_fee=-1), Rejected)


@pytest.mark.parametrize(
    "phase, started, schedule, expected",
    [
        (OrderPhase.DRAFT, False, False, ImpactLevel.NONE),
        (OrderPhase.DRAFT, True, True, ImpactLevel.NONE),
        (OrderPhase.DESIGN, True, True, ImpactLevel.LOW),
        (OrderPhase.MOCKUP_APPROVED, False, True, ImpactLevel.LOW),
        (OrderPhase.PRE_PRODUCTION, False, True, ImpactLevel.MEDIUM),
        (OrderPhase.PRE_PRODUCTION, False, False, ImpactLevel.LOW),
        (OrderPhase.IN_PRODUCTION, True, False, ImpactLevel.HIGH),
        (OrderPhase.IN_PRODUCTION, False, False, ImpactLevel.MEDIUM),
        (OrderPhase.QC_COMPLETE, False, False, ImpactLevel.CRITICAL),
    ],
)
def test_impact_level(phase, started, schedule, expected):
    assert change_fees.get_impact_level(phase, started, schedule) == expected


def test_impact_level_default_branch():
    # every combination without its own rule resolves to the default
    assert change_fees.get_impact_level(OrderPhase.MOCKUP_APPROVED, True, False) == ImpactLevel.MEDIUM
    assert change_fees.get_impact_level(OrderPhase.MOCKUP_APPROVED, True, True) == ImpactLevel.MEDIUM
    assert change_fees.get_impact_level("shipping", False, False) == change_fees.DEFAULT_IMPACT_LEVEL
    assert ChangeFeeCalculator().get_impact_level("unknown", True, True) == ImpactLevel.MEDIUM


def test_change_category():
    assert change_fees.determine_change_category(ChangeType.CANCEL, OrderPhase.DRAFT) == ChangeCategory.MINOR
    assert change_fees.determine_change_category(ChangeType.CANCEL, OrderPhase.DESIGN) == ChangeCategory.MAJOR
    assert change_fees.determine_change_category(ChangeType.DESIGN_REVISION, OrderPhase.IN_PRODUCTION) == ChangeCategory.MINOR
    assert change_fees.determine_change_category(ChangeType.ADD_WORK, OrderPhase.DESIGN) == ChangeCategory.MAJOR
    assert (
        change_fees.determine_change_category(ChangeType.DESIGN_REVISION, OrderPhase.IN_PRODUCTION, 60, 100)
        == ChangeCategory.CRITICAL
    )


def test_change_request_workflow_moves():
    CR = ChangeRequestStatus
    quoted = change_fees.change_request_transition(CR.PENDING_QUOTE, CR.AWAITING_CUSTOMER)
    assert isinstance(quoted, Accepted)
    assert quoted.direction == TransitionDirection.FORWARD

    rejected = change_fees.change_request_transition(CR.AWAITING_CUSTOMER, CR.REJECTED)
    assert isinstance(rejected, Accepted)
    assert rejected.direction == TransitionDirection.BACKWARD

    skip = change_fees.change_request_transition(CR.PENDING_QUOTE, CR.COMPLETED)
    assert isinstance(skip, Rejected) and skip.error == EngineError.ILLEGAL_TRANSITION

    for final in change_fees.FINAL_CHANGE_REQUEST_STATUSES:
        result = change_fees.change_request_transition(final, CR.IN_PROGRESS)
        assert isinstance(result, Rejected) and result.error == EngineError.TERMINAL_STATE


def test_design_rework_after_half_the_order_is_critical():
    impact = change_fees.analyze_impact(
        ChangeType.DESIGN_REVISION,
        OrderPhase.IN_PRODUCTION,
        change_fees.ImpactContext(produced_qty=60, ordered_qty=100, designs_approved=True),
    )
    assert impact.production_already_started is True
    assert impact.waste_qty == 60
    assert impact.design_rework_required is True
    assert impact.material_waste_cost == 0
    assert impact.affects_due_date is True
    assert impact.delay_days == change_fees.MID_PRODUCTION_DELAY_DAYS
    assert impact.severity == ImpactLevel.CRITICAL


def test_reducing_changes_waste_received_material():
    impact = change_fees.analyze_impact(
        ChangeType.QUANTITY_CHANGE,
        OrderPhase.PRE_PRODUCTION,
        change_fees.ImpactContext(
            produced_qty=10, ordered_qty=100, materials_ordered=True, materials_received=True, quantity_change=-20
        ),
    )
    assert impact.waste_qty == 10
    assert impact.material_waste_cost == 500
    assert impact.affects_due_date is False
    assert impact.delay_days == 0
    assert impact.severity == ImpactLevel.HIGH

    increase = change_fees.analyze_impact(
        ChangeType.QUANTITY_CHANGE,
        OrderPhase.PRE_PRODUCTION,
        change_fees.ImpactContext(produced_qty=10, ordered_qty=100, materials_received=True, quantity_change=20),
    )
    assert increase.waste_qty == 0
    assert increase.material_waste_cost == 0


@pytest.mark.parametrize(
    "context, expected",
    [
        (change_fees.ImpactContext(), ImpactLevel.LOW),
        (change_fees.ImpactContext(materials_ordered=True), ImpactLevel.MEDIUM),
        (change_fees.ImpactContext(designs_approved=True), ImpactLevel.HIGH),
    ],
)
def test_impact_severity_without_production(context, expected):
    impact = change_fees.analyze_impact(ChangeType.COLOR_CHANGE, OrderPhase.DESIGN, context)
    assert impact.production_already_started is False
    assert impact.severity == expected


def test_material_waste_cost_alone_can_be_critical():
    impact = change_fees.analyze_impact(
        ChangeType.CANCEL,
        OrderPhase.IN_PRODUCTION,
        change_fees.ImpactContext(produced_qty=30, ordered_qty=100, materials_received=True),
    )
    assert impact.material_waste_cost == 1500
    assert impact.severity == ImpactLevel.CRITICAL
