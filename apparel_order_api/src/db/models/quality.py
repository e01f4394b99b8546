from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base, TimestampMixin, UUIDPkMixin


class QCRecord(UUIDPkMixin, TimestampMixin, Base):
    """Inspection of a batch with its derived pass rate and result."""
    __tablename__ = "qc_records"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    qc_stage: Mapped[str] = mapped_column(String(32), nullable=False)
    total_qty: Mapped[int] = mapped_column(Integer, nullable=False)
    passed_qty: Mapped[int] = mapped_column(Integer, nullable=False)
    failed_qty: Mapped[int] = mapped_column(Integer, nullable=False)
    rework_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pass_rate: Mapped[int] = mapped_column(Integer, nullable=False)
    overall_result: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    worst_severity: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    # [{"code", "name", "passed", "defect_severity", "notes"}, ...]
    checkpoints: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    checked_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    follow_up_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    follow_up_completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
