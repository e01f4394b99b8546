from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from src.engine.enums import DefectSeverity, QCResult, QCStage


class CheckpointIn(BaseModel):
    """Result of one inspected characteristic."""
    code: str = Field(..., description="Checkpoint code, e.g. color_accuracy")
    name: Optional[str] = Field(None)
    passed: bool
    defect_severity: Optional[DefectSeverity] = Field(None)
    notes: Optional[str] = Field(None)


class QCEvaluateRequest(BaseModel):
    """Quantities and checkpoints of one inspection."""
    total_qty: int
    passed_qty: int
    failed_qty: int
    rework_qty: int = Field(0)
    checkpoints: List[CheckpointIn] = Field(default_factory=list)


class QCEvaluationRead(BaseModel):
    pass_rate: int
    overall_result: QCResult
    has_critical_defect: bool
    worst_severity: Optional[DefectSeverity] = Field(None)
    follow_up_required: bool

    class Config:
        from_attributes = True


class QCRecordCreate(QCEvaluateRequest):
    """Record an inspection; checkpoints default from the order work type when empty."""
    order_id: UUID
    qc_stage: QCStage = Field(QCStage.FINAL)
    work_type_code: Optional[str] = Field(None, description="Overrides the order work type for default checkpoints")
    notes: Optional[str] = Field(None)


class QCRecordRead(BaseModel):
    """QC record read model."""
    id: UUID
    order_id: UUID
    qc_stage: QCStage
    total_qty: int
    passed_qty: int
    failed_qty: int
    rework_qty: int
    pass_rate: int
    overall_result: QCResult
    worst_severity: Optional[DefectSeverity] = Field(None)
    checkpoints: List[CheckpointIn] = Field(default_factory=list)
    notes: Optional[str] = Field(None)
    checked_by: Optional[str] = Field(None)
    follow_up_required: bool
    follow_up_completed_at: Optional[datetime] = Field(None)
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CheckpointTemplateRead(BaseModel):
    code: str
    name: str
    required: bool

    class Config:
        from_attributes = True


class QCStats(BaseModel):
    total_records: int
    passed: int
    passed_with_rework: int
    failed: int
    follow_up_open: int
    avg_pass_rate: float = Field(..., description="Mean pass rate over the records, 0 when none")
