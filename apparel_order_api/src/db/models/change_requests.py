from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base, TimestampMixin, UUIDPkMixin
from src.engine.enums import ChangeRequestStatus

Money = Numeric(14, 2, asdecimal=False)


class ChangeRequest(UUIDPkMixin, TimestampMixin, Base):
    """Customer-initiated change against an order, priced by the phase it was filed in."""
    __tablename__ = "change_requests"

    request_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    order_phase: Mapped[str] = mapped_column(String(32), nullable=False)
    change_type: Mapped[str] = mapped_column(String(32), nullable=False)
    change_category: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ChangeRequestStatus.PENDING_QUOTE.value, index=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    customer_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # impact
    impact_level: Mapped[str] = mapped_column(String(16), nullable=False)
    production_started: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    affects_schedule: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    days_delayed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quantity_change: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    waste_qty: Mapped[Optional[float]] = mapped_column(Money, nullable=True)
    waste_unit_cost: Mapped[Optional[float]] = mapped_column(Money, nullable=True)
    is_rush: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    impact_analysis: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    # fees
    base_amount: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    base_fee: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    design_fee: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    rework_fee: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    material_fee: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    waste_fee: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    rush_fee: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    other_fee: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    other_fee_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    discount: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    total_fee: Mapped[float] = mapped_column(Money, nullable=False, default=0)

    # quoting and payment
    quoted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    quoted_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    customer_response: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    customer_responded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    payment_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    payment_received_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    payment_reference: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancel_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
