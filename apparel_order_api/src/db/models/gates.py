from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base, TimestampMixin, UUIDPkMixin
from src.engine.enums import GateStatus


class ApprovalGate(UUIDPkMixin, TimestampMixin, Base):
    """One approval checkpoint an order must clear before production."""
    __tablename__ = "approval_gates"
    __table_args__ = (UniqueConstraint("order_id", "gate_type"),)

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    gate_type: Mapped[str] = mapped_column(String(32), nullable=False)
    gate_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=GateStatus.PENDING.value)
    is_mandatory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    requires_customer_approval: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    customer_confirmed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    customer_confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_items: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_items: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    approved_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
