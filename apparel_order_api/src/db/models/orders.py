from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base, TimestampMixin, UUIDPkMixin, utcnow
from src.engine.enums import OrderStatus, PriorityCode, ProductionMode, SLAPriority


class Order(UUIDPkMixin, TimestampMixin, Base):
    """Customer apparel order; `version` guards concurrent status writes."""
    __tablename__ = "orders"

    order_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    customer_name: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=OrderStatus.DRAFT.value, index=True
    )
    priority_code: Mapped[str] = mapped_column(
        String(16), nullable=False, default=PriorityCode.NORMAL.value
    )
    production_mode: Mapped[str] = mapped_column(
        String(16), nullable=False, default=ProductionMode.IN_HOUSE.value
    )
    work_type_code: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    total_amount: Mapped[float] = mapped_column(Numeric(14, 2, asdecimal=False), nullable=False, default=0)
    paid_amount: Mapped[float] = mapped_column(Numeric(14, 2, asdecimal=False), nullable=False, default=0)
    ordered_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    produced_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    sla_priority: Mapped[str] = mapped_column(
        String(16), nullable=False, default=SLAPriority.NORMAL.value
    )
    # [{"key": "quoted", "deadline": "2024-01-02", "actual": null}, ...]
    timeline: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}


class OrderStatusEvent(UUIDPkMixin, Base):
    """Audit row written for every accepted status transition."""
    __tablename__ = "order_status_events"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    from_status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    to_status: Mapped[str] = mapped_column(String(32), nullable=False)
    direction: Mapped[str] = mapped_column(String(16), nullable=False)
    label: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    changed_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
