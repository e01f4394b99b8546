"""
SLA timeline projection.

Deadlines accumulate step by step from the order date: each step adds its own
nominal day count scaled by the priority multiplier and rounded up to a whole
day.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import date, timedelta
from decimal import Decimal
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

from src.engine.enums import OrderStatus, PriorityCode, SLAPriority, StepState


@dataclass(frozen=True)
class StepTemplate:
    key: str
    label: str
    default_days: int


@dataclass(frozen=True)
class TimelineStep:
    key: str
    deadline: Optional[date]
    actual: Optional[date] = None


TIMELINE_STEPS: Tuple[StepTemplate, ...] = (
    StepTemplate("quoted", "Quotation", 1),
    StepTemplate("payment", "Payment", 3),
    StepTemplate("design", "Design", 3),
    StepTemplate("mockup", "Mockup approval", 2),
    StepTemplate("production", "Production", 5),
    StepTemplate("qc", "Quality control", 1),
    StepTemplate("shipping", "Shipping", 2),
)

PRIORITY_MULTIPLIERS: Mapping[SLAPriority, Decimal] = MappingProxyType({
    SLAPriority.NORMAL: Decimal("1"),
    SLAPriority.URGENT: Decimal("0.7"),
    SLAPriority.EXPRESS: Decimal("0.5"),
})

_SLA_BY_ORDER_PRIORITY: Mapping[PriorityCode, SLAPriority] = MappingProxyType({
    PriorityCode.NORMAL: SLAPriority.NORMAL,
    PriorityCode.RUSH: SLAPriority.URGENT,
    PriorityCode.URGENT: SLAPriority.EXPRESS,
})

_S = OrderStatus
_STEP_INDEX: Mapping[OrderStatus, int] = MappingProxyType({
    _S.DRAFT: 0,
    _S.QUOTED: 0,
    _S.AWAITING_PAYMENT: 1,
    _S.PARTIAL_PAID: 1,
    _S.DESIGNING: 2,
    _S.AWAITING_MOCKUP_APPROVAL: 2,
    _S.AWAITING_MATERIAL: 4,
    _S.QUEUED: 4,
    _S.IN_PRODUCTION: 4,
    _S.QC_PENDING: 5,
    _S.READY_TO_SHIP: 6,
    _S.SHIPPED: 6,
    _S.COMPLETED: 7,
})

WARNING_WINDOW_DAYS = 1


def scaled_days(default_days: int, priority: Union[SLAPriority, str]) -> int:
    """Nominal days times the priority multiplier, rounded up to a whole day."""
    return math.ceil(Decimal(default_days) * PRIORITY_MULTIPLIERS[SLAPriority(priority)])


# PUBLIC_INTERFACE
def project(
    order_date: date,
    priority: Union[SLAPriority, str] = SLAPriority.NORMAL,
    steps: Sequence[StepTemplate] = TIMELINE_STEPS,
) -> List[TimelineStep]:
    """
    Project step deadlines for an order.

    Parameters:
        order_date: the day the order was placed
        priority: SLA priority selecting the multiplier
        steps: step template, in execution order
    Returns:
        One TimelineStep per template step; deadlines are non-decreasing.
    """
    current = order_date
    projected: List[TimelineStep] = []
    for step in steps:
        current = current + timedelta(days=scaled_days(step.default_days, priority))
        projected.append(TimelineStep(key=step.key, deadline=current))
    return projected


# PUBLIC_INTERFACE
def reproject(
    order_date: date,
    priority: Union[SLAPriority, str],
    existing: Sequence[TimelineStep] = (),
    steps: Sequence[StepTemplate] = TIMELINE_STEPS,
) -> List[TimelineStep]:
    """Project again after a priority change, keeping recorded actual dates by step key."""
    actuals: Dict[str, Optional[date]] = {s.key: s.actual for s in existing}
    return [replace(s, actual=actuals.get(s.key)) for s in project(order_date, priority, steps)]


# PUBLIC_INTERFACE
def sla_priority_for(priority_code: Union[PriorityCode, str]) -> SLAPriority:
    """SLA priority implied by an order's priority code."""
    return _SLA_BY_ORDER_PRIORITY[PriorityCode(priority_code)]


# PUBLIC_INTERFACE
def step_index_for_status(status: Union[OrderStatus, str]) -> int:
    """
    Timeline step an order status sits on.

    Completed orders sit past the last step; on_hold and cancelled fall back to 0.
    """
    return _STEP_INDEX.get(OrderStatus(status), 0)


# PUBLIC_INTERFACE
def step_state(
    index: int,
    current_index: int,
    deadline: Optional[date],
    today: date,
    actual: Optional[date] = None,
) -> StepState:
    """Display state of one step relative to the order's current step."""
    if actual is not None or index < current_index:
        return StepState.COMPLETED
    if index > current_index:
        return StepState.PENDING
    if deadline is None:
        return StepState.CURRENT
    if today > deadline:
        return StepState.OVERDUE
    if (deadline - today).days <= WARNING_WINDOW_DAYS:
        return StepState.WARNING
    return StepState.CURRENT


def timeline_states(
    steps: Sequence[TimelineStep],
    status: Union[OrderStatus, str],
    today: date,
) -> List[StepState]:
    current = step_index_for_status(status)
    return [
        step_state(i, current, s.deadline, today, s.actual)
        for i, s in enumerate(steps)
    ]


def on_track(steps: Sequence[TimelineStep], status: Union[OrderStatus, str], today: date) -> bool:
    """False only when the current step's deadline has passed."""
    current = step_index_for_status(status)
    if current >= len(steps) or steps[current].deadline is None:
        return True
    return today <= steps[current].deadline


def estimated_days(order_date: date, steps: Sequence[TimelineStep]) -> int:
    """Days from the order date to the last step deadline."""
    if not steps or steps[-1].deadline is None:
        return 0
    return (steps[-1].deadline - order_date).days


# PUBLIC_INTERFACE
def record_progress(
    steps: Sequence[TimelineStep],
    status: Union[OrderStatus, str],
    today: date,
) -> List[TimelineStep]:
    """
    Align recorded completion dates with the order's position.

    Steps behind the status get today's date if they had none; steps at or
    after it lose their date (a rollback reopens them). Statuses without a
    timeline position (on_hold, cancelled) leave the steps untouched.
    """
    status = OrderStatus(status)
    if status not in _STEP_INDEX:
        return list(steps)
    current = _STEP_INDEX[status]
    return [
        replace(s, actual=(s.actual or today) if i < current else None)
        for i, s in enumerate(steps)
    ]


_NEVER_OVERDUE = frozenset({OrderStatus.SHIPPED, OrderStatus.COMPLETED, OrderStatus.CANCELLED})


# PUBLIC_INTERFACE
def is_overdue(due_date: Optional[date], status: Union[OrderStatus, str], today: date) -> bool:
    """True when the promised due date has passed and the order has not shipped."""
    if due_date is None or OrderStatus(status) in _NEVER_OVERDUE:
        return False
    return due_date < today
