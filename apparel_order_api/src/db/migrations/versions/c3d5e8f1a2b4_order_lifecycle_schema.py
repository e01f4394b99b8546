"""Order lifecycle schema.

- orders (optimistic version column)
- order_status_events
- approval_gates
- change_requests
- qc_records

Column types are portable so the same revision runs on PostgreSQL and SQLite.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "c3d5e8f1a2b4"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _money(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.Numeric(14, 2), nullable=nullable, server_default=None if nullable else "0")


def _order_fk() -> sa.Column:
    return sa.Column(
        "order_id",
        sa.Uuid(),
        sa.ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "orders",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("order_number", sa.String(32), nullable=False),
        sa.Column("customer_name", sa.Text(), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="draft"),
        sa.Column("priority_code", sa.String(16), nullable=False, server_default="normal"),
        sa.Column("production_mode", sa.String(16), nullable=False, server_default="in_house"),
        sa.Column("work_type_code", sa.String(32), nullable=True),
        _money("total_amount"),
        _money("paid_amount"),
        sa.Column("ordered_qty", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("produced_qty", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("order_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("sla_priority", sa.String(16), nullable=False, server_default="normal"),
        sa.Column("timeline", sa.JSON(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_orders"),
        sa.UniqueConstraint("order_number", name="uq_orders_order_number"),
    )
    op.create_index("ix_orders_status", "orders", ["status"])

    op.create_table(
        "order_status_events",
        sa.Column("id", sa.Uuid(), nullable=False),
        _order_fk(),
        sa.Column("from_status", sa.String(32), nullable=True),
        sa.Column("to_status", sa.String(32), nullable=False),
        sa.Column("direction", sa.String(16), nullable=False),
        sa.Column("label", sa.Text(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("changed_by", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_order_status_events"),
    )
    op.create_index("ix_order_status_events_order_id", "order_status_events", ["order_id"])

    op.create_table(
        "approval_gates",
        sa.Column("id", sa.Uuid(), nullable=False),
        _order_fk(),
        sa.Column("gate_type", sa.String(32), nullable=False),
        sa.Column("gate_name", sa.Text(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("is_mandatory", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("requires_customer_approval", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("customer_confirmed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("customer_confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_items", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_items", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("approved_by", sa.Text(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_approval_gates"),
        sa.UniqueConstraint("order_id", "gate_type", name="uq_approval_gates_order_id"),
    )
    op.create_index("ix_approval_gates_order_id", "approval_gates", ["order_id"])

    op.create_table(
        "change_requests",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("request_number", sa.String(32), nullable=False),
        _order_fk(),
        sa.Column("order_phase", sa.String(32), nullable=False),
        sa.Column("change_type", sa.String(32), nullable=False),
        sa.Column("change_category", sa.String(16), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="pending_quote"),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("customer_reason", sa.Text(), nullable=True),
        sa.Column("impact_level", sa.String(16), nullable=False),
        sa.Column("production_started", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("affects_schedule", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("days_delayed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("quantity_change", sa.Integer(), nullable=False, server_default="0"),
        _money("waste_qty", nullable=True),
        _money("waste_unit_cost", nullable=True),
        sa.Column("is_rush", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("impact_analysis", sa.JSON(), nullable=True),
        _money("base_amount"),
        _money("base_fee"),
        _money("design_fee"),
        _money("rework_fee"),
        _money("material_fee"),
        _money("waste_fee"),
        _money("rush_fee"),
        _money("other_fee"),
        sa.Column("other_fee_description", sa.Text(), nullable=True),
        _money("discount"),
        _money("total_fee"),
        sa.Column("quoted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("quoted_by", sa.Text(), nullable=True),
        sa.Column("customer_response", sa.String(16), nullable=True),
        sa.Column("customer_responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payment_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("payment_received_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payment_reference", sa.Text(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_by", sa.Text(), nullable=True),
        sa.Column("cancel_reason", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Text(), nullable=True),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_change_requests"),
        sa.UniqueConstraint("request_number", name="uq_change_requests_request_number"),
    )
    op.create_index("ix_change_requests_order_id", "change_requests", ["order_id"])
    op.create_index("ix_change_requests_status", "change_requests", ["status"])

    op.create_table(
        "qc_records",
        sa.Column("id", sa.Uuid(), nullable=False),
        _order_fk(),
        sa.Column("qc_stage", sa.String(32), nullable=False),
        sa.Column("total_qty", sa.Integer(), nullable=False),
        sa.Column("passed_qty", sa.Integer(), nullable=False),
        sa.Column("failed_qty", sa.Integer(), nullable=False),
        sa.Column("rework_qty", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("pass_rate", sa.Integer(), nullable=False),
        sa.Column("overall_result", sa.String(32), nullable=False),
        sa.Column("worst_severity", sa.String(16), nullable=True),
        sa.Column("checkpoints", sa.JSON(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("checked_by", sa.Text(), nullable=True),
        sa.Column("follow_up_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("follow_up_completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_qc_records"),
    )
    op.create_index("ix_qc_records_order_id", "qc_records", ["order_id"])
    op.create_index("ix_qc_records_overall_result", "qc_records", ["overall_result"])


def downgrade() -> None:
    # Drop in reverse dependency order
    for tbl in ["qc_records", "change_requests", "approval_gates", "order_status_events", "orders"]:
        op.drop_table(tbl)
