from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from src.engine.enums import GateStatus, GateType


class GateRead(BaseModel):
    """Approval gate read model."""
    id: UUID = Field(..., description="Gate id")
    order_id: UUID
    gate_type: GateType
    gate_name: Optional[str] = Field(None)
    status: GateStatus
    is_mandatory: bool
    requires_customer_approval: bool
    customer_confirmed: bool
    customer_confirmed_at: Optional[datetime] = Field(None)
    approved_items: int
    total_items: int
    progress_percent: Optional[int] = Field(None, description="Item progress; null when the gate has no items")
    approved_by: Optional[str] = Field(None)
    approved_at: Optional[datetime] = Field(None)
    rejection_reason: Optional[str] = Field(None)
    notes: Optional[str] = Field(None)
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class GateCreate(BaseModel):
    """Open a gate manually; defaults come from the gate type."""
    gate_type: GateType
    gate_name: Optional[str] = Field(None)
    is_mandatory: Optional[bool] = Field(None)
    requires_customer_approval: Optional[bool] = Field(None)
    total_items: int = Field(0, ge=0)
    notes: Optional[str] = Field(None)


class GateUpdate(BaseModel):
    """Partial gate update. Status moves follow the gate lifecycle."""
    status: Optional[GateStatus] = Field(None)
    approved_items: Optional[int] = Field(None, ge=0)
    total_items: Optional[int] = Field(None, ge=0)
    customer_confirmed: Optional[bool] = Field(None)
    rejection_reason: Optional[str] = Field(None)
    notes: Optional[str] = Field(None)


class GateProgressRead(BaseModel):
    gate_type: GateType
    name: str
    status: GateStatus
    cleared: bool
    progress_percent: Optional[int] = Field(None)


class GatesSummaryRead(BaseModel):
    """Can production start, and what is still blocking it."""
    order_id: UUID
    production_unlocked: bool
    blocking_gates: List[str] = Field(default_factory=list, description="Gate types in canonical order")
    blocking_gate_names: List[str] = Field(default_factory=list)
    gates: List[GateProgressRead] = Field(default_factory=list)
    design_approved: bool
    mockup_approved: bool
    material_ready: bool
    payment_confirmed: bool
