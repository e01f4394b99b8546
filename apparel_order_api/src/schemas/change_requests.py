from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from src.engine.enums import (
    ChangeCategory,
    ChangeRequestStatus,
    ChangeType,
    ImpactLevel,
    OrderPhase,
)


class FeeBreakdownRead(BaseModel):
    base_fee: float = 0
    design_fee: float = 0
    rework_fee: float = 0
    material_fee: float = 0
    waste_fee: float = 0
    rush_fee: float = 0
    other_fee: float = 0
    discount: float = 0
    total_fee: float = 0

    class Config:
        from_attributes = True


class ChangeEstimateRequest(BaseModel):
    """Inputs of a fee/impact estimate; nothing is stored."""
    phase: OrderPhase
    change_type: ChangeType
    base_amount: float = Field(..., description="Order value the percentage fees apply to")
    quantity_change: int = Field(0, description="Positive when quantity increases")
    waste_qty: Optional[float] = Field(None)
    waste_unit_cost: Optional[float] = Field(None)
    is_rush: bool = Field(False)
    production_started: bool = Field(False)
    affects_schedule: bool = Field(False)
    produced_qty: int = Field(0, ge=0)
    ordered_qty: int = Field(0, ge=0)
    materials_ordered: bool = Field(False)
    materials_received: bool = Field(False)
    designs_approved: bool = Field(False)


class ChangeImpactRead(BaseModel):
    """Waste, rework and delay a change causes."""
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

    class Config:
        from_attributes = True


class ChangeEstimateResponse(BaseModel):
    fees: FeeBreakdownRead
    impact_level: ImpactLevel
    change_category: ChangeCategory
    impact_analysis: ChangeImpactRead


class ChangeRequestCreate(BaseModel):
    """File a change request; phase and base amount default from the order."""
    order_id: UUID
    change_type: ChangeType
    title: str = Field(..., min_length=1)
    description: Optional[str] = Field(None)
    customer_reason: Optional[str] = Field(None)
    order_phase: Optional[OrderPhase] = Field(None, description="Derived from the order status when omitted")
    base_amount: Optional[float] = Field(None, description="Defaults to the order total")
    quantity_change: int = Field(0)
    waste_qty: Optional[float] = Field(None)
    waste_unit_cost: Optional[float] = Field(None)
    is_rush: bool = Field(False)
    affects_schedule: bool = Field(False)
    days_delayed: Optional[int] = Field(None, ge=0, description="Defaults to the delay the impact analysis predicts")

    class Config:
        str_strip_whitespace = True


class ChangeRequestRead(BaseModel):
    """Change request read model."""
    id: UUID
    request_number: str
    order_id: UUID
    order_phase: OrderPhase
    change_type: ChangeType
    change_category: ChangeCategory
    status: ChangeRequestStatus
    title: str
    description: Optional[str] = Field(None)
    customer_reason: Optional[str] = Field(None)
    impact_level: ImpactLevel
    production_started: bool
    affects_schedule: bool
    days_delayed: int
    quantity_change: int
    waste_qty: Optional[float] = Field(None)
    waste_unit_cost: Optional[float] = Field(None)
    impact_analysis: Optional[ChangeImpactRead] = Field(None)
    is_rush: bool
    base_amount: float
    base_fee: float
    design_fee: float
    rework_fee: float
    material_fee: float
    waste_fee: float
    rush_fee: float
    other_fee: float
    other_fee_description: Optional[str] = Field(None)
    discount: float
    total_fee: float
    quoted_at: Optional[datetime] = Field(None)
    quoted_by: Optional[str] = Field(None)
    customer_response: Optional[str] = Field(None)
    customer_responded_at: Optional[datetime] = Field(None)
    payment_required: bool
    payment_received_at: Optional[datetime] = Field(None)
    payment_reference: Optional[str] = Field(None)
    completed_at: Optional[datetime] = Field(None)
    completed_by: Optional[str] = Field(None)
    cancel_reason: Optional[str] = Field(None)
    created_by: Optional[str] = Field(None)
    admin_notes: Optional[str] = Field(None)
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class QuoteRequest(BaseModel):
    """Manual quoting step: extra fee, discount, and whether payment is needed."""
    other_fee: float = Field(0)
    other_fee_description: Optional[str] = Field(None)
    discount: float = Field(0)
    payment_required: Optional[bool] = Field(None, description="Defaults to total_fee > 0")
    admin_notes: Optional[str] = Field(None)


class CustomerResponse(BaseModel):
    accept: bool = Field(..., description="True when the customer accepts the quote")
    notes: Optional[str] = Field(None)


class PaymentRecord(BaseModel):
    payment_reference: Optional[str] = Field(None)


class CancelRequest(BaseModel):
    reason: str = Field(..., min_length=1)


class ChangeRequestStats(BaseModel):
    total: int
    by_status: Dict[str, int] = Field(default_factory=dict)
    awaiting_customer: int
    total_fees_quoted: float = Field(..., description="Sum of total_fee over requests not cancelled or rejected")
    total_fees_collected: float = Field(..., description="Sum of total_fee over paid or completed requests")
    by_type: Dict[str, int] = Field(default_factory=dict)
    by_impact: Dict[str, int] = Field(default_factory=dict)
