"""Initial schema for clients, promotions, payments and their audit trail"""

from __future__ import annotations

from typing import Sequence

import sqlalchemy as sa
from alembic import op

revision = "20261019_0001"
down_revision = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

PAYMENT_PERIODS = ("MONTHLY", "QUARTERLY", "ANNUAL")
AUDIT_ACTIONS = ("created", "updated", "deleted")


def _guid() -> sa.types.TypeEngine:
    return sa.String(length=36).with_variant(sa.Uuid(), "postgresql")


def upgrade() -> None:
    payment_period = sa.Enum(*PAYMENT_PERIODS, name="payment_period_enum")
    audit_action = sa.Enum(*AUDIT_ACTIONS, name="payment_audit_action_enum")

    op.create_table(
        "clients",
        sa.Column("client_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("full_name", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=True),
        sa.Column("last_name", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("national_id", sa.String(), nullable=True, unique=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("registration_date", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("subscription_period", payment_period, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("clients_full_name_idx", "clients", ["full_name"])

    op.create_table(
        "promotions",
        sa.Column("promotion_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("fixed_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("subscription_months", sa.Integer(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint("fixed_price > 0", name="ck_promotions_price_positive"),
        sa.CheckConstraint(
            "subscription_months IS NULL OR subscription_months > 0",
            name="ck_promotions_months_positive",
        ),
        sa.CheckConstraint(
            "start_date IS NULL OR end_date IS NULL OR start_date <= end_date",
            name="ck_promotions_valid_window",
        ),
    )

    op.create_table(
        "payments",
        sa.Column("payment_id", _guid(), primary_key=True),
        sa.Column(
            "client_id",
            sa.Integer(),
            sa.ForeignKey("clients.client_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "promotion_id",
            sa.Integer(),
            sa.ForeignKey("promotions.promotion_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("next_payment_date", sa.Date(), nullable=False),
        sa.Column("subscription_period", payment_period, nullable=False),
        sa.Column("notes", sa.String(length=75), nullable=True),
        sa.Column("recorded_by", sa.String(), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        sa.CheckConstraint(
            "next_payment_date > payment_date", name="ck_payments_valid_interval"
        ),
    )
    op.create_index("ix_payments_client_id", "payments", ["client_id"])
    op.create_index("ix_payments_promotion_id", "payments", ["promotion_id"])
    op.create_index(
        "payments_client_active_idx",
        "payments",
        ["client_id", "is_deleted", "payment_date"],
    )

    op.create_table(
        "payment_audit_log",
        sa.Column("id", _guid(), primary_key=True),
        sa.Column(
            "payment_id",
            _guid(),
            sa.ForeignKey("payments.payment_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("action", audit_action, nullable=False),
        sa.Column(
            "performed_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("performed_by", sa.String(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("snapshot", sa.JSON(), nullable=True),
    )
    op.create_index("ix_payment_audit_log_payment_id", "payment_audit_log", ["payment_id"])

    op.create_table(
        "operational_metric_events",
        sa.Column("event_id", _guid(), primary_key=True),
        sa.Column("event_type", sa.String(length=120), nullable=False),
        sa.Column("outcome", sa.String(length=32), nullable=False),
        sa.Column("duration_ms", sa.Numeric(14, 3), nullable=True),
        sa.Column("labels", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index(
        "ix_operational_metric_events_event_type",
        "operational_metric_events",
        ["event_type"],
    )
    op.create_index(
        "ix_operational_metric_events_outcome",
        "operational_metric_events",
        ["outcome"],
    )
    op.create_index(
        "ix_operational_metric_events_created_at",
        "operational_metric_events",
        ["created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_operational_metric_events_created_at", table_name="operational_metric_events")
    op.drop_index("ix_operational_metric_events_outcome", table_name="operational_metric_events")
    op.drop_index("ix_operational_metric_events_event_type", table_name="operational_metric_events")
    op.drop_table("operational_metric_events")
    op.drop_index("ix_payment_audit_log_payment_id", table_name="payment_audit_log")
    op.drop_table("payment_audit_log")
    op.drop_index("payments_client_active_idx", table_name="payments")
    op.drop_index("ix_payments_promotion_id", table_name="payments")
    op.drop_index("ix_payments_client_id", table_name="payments")
    op.drop_table("payments")
    op.drop_table("promotions")
    op.drop_index("clients_full_name_idx", table_name="clients")
    op.drop_table("clients")

    bind = op.get_bind()
    sa.Enum(name="payment_audit_action_enum").drop(bind, checkfirst=True)
    sa.Enum(name="payment_period_enum").drop(bind, checkfirst=True)
