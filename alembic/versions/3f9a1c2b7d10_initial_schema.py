"""initial schema

Revision ID: 3f9a1c2b7d10
Revises:
Create Date: 2026-10-12
"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

revision: str = "3f9a1c2b7d10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "customers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, server_default=""),
        sa.Column("default_payment_method", sa.String(30), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "plans",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "billing_schedules",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("uuid", sa.String(26), nullable=False, unique=True),
        sa.Column("customer_id", sa.Integer, sa.ForeignKey("customers.id"), nullable=False),
        sa.Column("plan_id", sa.Integer, sa.ForeignKey("plans.id"), nullable=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("frequency", sa.String(20), nullable=False),
        sa.Column("custom_days", sa.Integer, nullable=True),
        sa.Column("due_day", sa.Integer, nullable=False, server_default="10"),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date, nullable=True),
        sa.Column("next_billing_date", sa.Date, nullable=True),
        sa.Column("notification_days", sa.Text, nullable=False),
        sa.Column("auto_generate_invoice", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("payment_method", sa.String(30), nullable=False, server_default="default"),
        sa.Column("payment_gateway_id", sa.Integer, nullable=True),
        sa.Column("auto_charge", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("installments", sa.Integer, nullable=True),
        sa.Column("installments_generated", sa.Integer, nullable=False, server_default="0"),
        sa.Column("apply_late_fee", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("late_fee_percentage", sa.Numeric(6, 3), nullable=False, server_default="2.0"),
        sa.Column("apply_daily_interest", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("daily_interest_percentage", sa.Numeric(6, 3), nullable=False, server_default="0.033"),
        sa.Column("last_execution_date", sa.DateTime, nullable=True),
        sa.Column("last_generated_invoice_id", sa.Integer, nullable=True),
        sa.Column("notes", sa.Text, nullable=False, server_default=""),
        sa.Column("version", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
    )
    op.create_index("ix_billing_schedules_due", "billing_schedules", ["status", "next_billing_date"])
    op.create_index("ix_billing_schedules_customer_id", "billing_schedules", ["customer_id"])

    op.create_table(
        "invoices",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("uuid", sa.String(26), nullable=False, unique=True),
        sa.Column("customer_id", sa.Integer, sa.ForeignKey("customers.id"), nullable=False),
        sa.Column(
            "billing_schedule_id",
            sa.Integer,
            sa.ForeignKey("billing_schedules.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("due_date", sa.Date, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("payment_method", sa.String(30), nullable=False, server_default=""),
        sa.Column("payment_gateway_id", sa.Integer, nullable=True),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("payment_date", sa.Date, nullable=True),
        sa.Column("transaction_id", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.UniqueConstraint("billing_schedule_id", "due_date", name="uq_invoices_schedule_due_date"),
    )
    op.create_index("ix_invoices_status_due_date", "invoices", ["status", "due_date"])


def downgrade() -> None:
    op.drop_index("ix_invoices_status_due_date", table_name="invoices")
    op.drop_table("invoices")
    op.drop_index("ix_billing_schedules_customer_id", table_name="billing_schedules")
    op.drop_index("ix_billing_schedules_due", table_name="billing_schedules")
    op.drop_table("billing_schedules")
    op.drop_table("plans")
    op.drop_table("customers")
