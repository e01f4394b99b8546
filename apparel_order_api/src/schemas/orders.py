from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from src.engine.enums import (
    OrderPhase,
    OrderStatus,
    PriorityCode,
    ProductionMode,
    SLAPriority,
    StepState,
    TransitionDirection,
)


class TimelineStepRead(BaseModel):
    """One SLA timeline step."""
    key: str = Field(..., description="Step key (quoted, payment, design, mockup, production, qc, shipping)")
    deadline: Optional[date] = Field(None, description="Projected deadline")
    actual: Optional[date] = Field(None, description="Recorded completion date")
    state: Optional[StepState] = Field(None, description="Display state relative to the order status")


class OrderCreate(BaseModel):
    """Create order payload. New orders always start in draft."""
    customer_name: str = Field(..., min_length=1, description="Customer display name")
    order_number: Optional[str] = Field(None, max_length=32, description="Generated when omitted")
    priority_code: PriorityCode = Field(PriorityCode.NORMAL)
    production_mode: ProductionMode = Field(ProductionMode.IN_HOUSE)
    work_type_code: Optional[str] = Field(None, description="dtg, dtf, embroidery, silkscreen, sewing ...")
    total_amount: float = Field(0, ge=0)
    paid_amount: float = Field(0, ge=0)
    ordered_qty: int = Field(0, ge=0)
    order_date: Optional[date] = Field(None, description="Defaults to today")
    due_date: Optional[date] = Field(None)
    notes: Optional[str] = Field(None)

    class Config:
        str_strip_whitespace = True


class OrderRead(BaseModel):
    """Order read model."""
    id: UUID = Field(..., description="Order id")
    order_number: str = Field(..., description="Order number")
    customer_name: str
    status: OrderStatus
    priority_code: PriorityCode
    production_mode: ProductionMode
    work_type_code: Optional[str] = Field(None)
    total_amount: float
    paid_amount: float
    ordered_qty: int
    produced_qty: int
    order_date: date
    due_date: Optional[date] = Field(None)
    sla_priority: SLAPriority
    overdue: bool = Field(False, description="Past due_date and not yet shipped, completed or cancelled")
    progress: int = Field(0, description="Rough completion percentage implied by the status")
    timeline: List[TimelineStepRead] = Field(default_factory=list)
    notes: Optional[str] = Field(None)
    version: int = Field(..., description="Optimistic concurrency version; send back as expected_version")
    created_at: datetime = Field(..., description="Created at")
    updated_at: datetime = Field(..., description="Updated at")

    class Config:
        from_attributes = True


class StatusEventRead(BaseModel):
    """Audit entry for one accepted status transition."""
    id: UUID
    order_id: UUID
    from_status: Optional[OrderStatus] = Field(None)
    to_status: OrderStatus
    direction: TransitionDirection
    label: Optional[str] = Field(None)
    reason: Optional[str] = Field(None)
    changed_by: Optional[str] = Field(None)
    created_at: datetime

    class Config:
        from_attributes = True


class TransitionRequest(BaseModel):
    """Requested status move."""
    target: OrderStatus = Field(..., description="Requested new status")
    reason: Optional[str] = Field(None, description="Mandatory for rollback, hold and cancellation")
    expected_version: Optional[int] = Field(None, description="Reject with version_conflict if the order changed")


class TransitionOption(BaseModel):
    target: OrderStatus
    label: str
    direction: TransitionDirection
    requires_reason: bool
    suggested_reason: Optional[str] = Field(None)


class AvailableTransitions(BaseModel):
    """Moves offered to an operator from the order's current status."""
    status: OrderStatus
    phase: Optional[OrderPhase] = Field(None, description="Production phase used for change pricing")
    forward: List[TransitionOption] = Field(default_factory=list)
    backward: List[TransitionOption] = Field(default_factory=list)
    production_unlocked: bool = Field(..., description="Every mandatory gate cleared")
    blocking_gates: List[str] = Field(default_factory=list)


class TransitionResponse(BaseModel):
    order: OrderRead
    event: StatusEventRead
    opened_gates: List[str] = Field(default_factory=list, description="Gate types created by entering the status")
    reopened_gates: List[str] = Field(
        default_factory=list, description="Gate types sent back to pending by a rollback into the status"
    )


class PriorityUpdate(BaseModel):
    """Change the order priority; the SLA timeline is projected again."""
    priority_code: PriorityCode
    expected_version: Optional[int] = Field(None)


class ProductionUpdate(BaseModel):
    """Units finished so far; feeds the change category of later change requests."""
    produced_qty: int = Field(..., ge=0)
    expected_version: Optional[int] = Field(None)


class TimelineRead(BaseModel):
    """SLA timeline with display states as of a given day."""
    order_id: UUID
    status: OrderStatus
    sla_priority: SLAPriority
    as_of: date
    current_step_index: int
    on_track: bool
    estimated_days: int
    steps: List[TimelineStepRead] = Field(default_factory=list)
