"""Initial schema: users, recurring definitions, monthly entries, goals, ledger

Revision ID: 0001
Revises:
Create Date: 2026-10-17 00:00:00.000000
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(updated: bool = True) -> list:
    cols = [sa.Column("created_at", sa.DateTime(), nullable=True)]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(), nullable=True))
    return cols


def _owner() -> sa.Column:
    return sa.Column(
        "user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("password_hash", sa.String(length=100), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="MYR"),
        sa.Column("current_balance_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("starting_balance_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("balance_updated_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_id", "users", ["id"], unique=False)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # ── Income ────────────────────────────────────────────────────────────────
    op.create_table(
        "income_streams",
        sa.Column("id", sa.Integer(), primary_key=True),
        _owner(),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="SALARY"),
        sa.Column("expected_monthly_cents", sa.Integer(), nullable=False),
        sa.Column("actual_monthly_cents", sa.Integer(), nullable=True),
        sa.Column("frequency", sa.String(length=20), nullable=False, server_default="MONTHLY"),
        sa.Column("earned_date", sa.String(length=10), nullable=True),
        sa.Column("end_date", sa.String(length=10), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_income_streams_id", "income_streams", ["id"], unique=False)
    op.create_index("ix_income_streams_user_id", "income_streams", ["user_id"], unique=False)

    op.create_table(
        "income_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "income_stream_id",
            sa.Integer(),
            sa.ForeignKey("income_streams.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("month", sa.String(length=7), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_generated", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(updated=False),
        sa.UniqueConstraint("income_stream_id", "month", name="uq_income_entries_stream_month"),
    )
    op.create_index("ix_income_entries_id", "income_entries", ["id"], unique=False)
    op.create_index("ix_income_entries_income_stream_id", "income_entries", ["income_stream_id"], unique=False)

    # ── Expenses ──────────────────────────────────────────────────────────────
    op.create_table(
        "expenses",
        sa.Column("id", sa.Integer(), primary_key=True),
        _owner(),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("category", sa.String(length=20), nullable=False, server_default="OTHER"),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="FIXED"),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("frequency", sa.String(length=20), nullable=False, server_default="MONTHLY"),
        sa.Column("incurred_date", sa.String(length=10), nullable=True),
        sa.Column("end_date", sa.String(length=10), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_expenses_id", "expenses", ["id"], unique=False)
    op.create_index("ix_expenses_user_id", "expenses", ["user_id"], unique=False)

    op.create_table(
        "expense_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "expense_id",
            sa.Integer(),
            sa.ForeignKey("expenses.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("month", sa.String(length=7), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_generated", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(updated=False),
        sa.UniqueConstraint("expense_id", "month", name="uq_expense_entries_expense_month"),
    )
    op.create_index("ix_expense_entries_id", "expense_entries", ["id"], unique=False)
    op.create_index("ix_expense_entries_expense_id", "expense_entries", ["expense_id"], unique=False)

    # ── One-off transactions ──────────────────────────────────────────────────
    for table in ("one_time_incomes", "one_time_expenses"):
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), primary_key=True),
            _owner(),
            sa.Column("name", sa.String(length=100), nullable=False),
            sa.Column("amount_cents", sa.Integer(), nullable=False),
            sa.Column("date", sa.String(length=10), nullable=False),
            sa.Column("category", sa.String(length=50), nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            *_timestamps(),
        )
        op.create_index(f"ix_{table}_id", table, ["id"], unique=False)
        op.create_index(f"ix_{table}_user_id", table, ["user_id"], unique=False)

    # ── Goals ─────────────────────────────────────────────────────────────────
    op.create_table(
        "goals",
        sa.Column("id", sa.Integer(), primary_key=True),
        _owner(),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("target_amount_cents", sa.Integer(), nullable=False),
        sa.Column("current_amount_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("target_date", sa.String(length=10), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("category", sa.String(length=20), nullable=False, server_default="OTHER"),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("image_path", sa.String(length=255), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_goals_id", "goals", ["id"], unique=False)
    op.create_index("ix_goals_user_id", "goals", ["user_id"], unique=False)

    op.create_table(
        "goal_contributions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "goal_id", sa.Integer(), sa.ForeignKey("goals.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("month", sa.String(length=10), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_goal_contributions_id", "goal_contributions", ["id"], unique=False)
    op.create_index("ix_goal_contributions_goal_id", "goal_contributions", ["goal_id"], unique=False)

    # ── Balance ledger, snapshots, plans ──────────────────────────────────────
    op.create_table(
        "balance_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        _owner(),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("previous_amount_cents", sa.Integer(), nullable=False),
        sa.Column("change_amount_cents", sa.Integer(), nullable=False),
        sa.Column("entry_type", sa.String(length=20), nullable=False, server_default="MANUAL_UPDATE"),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_balance_entries_id", "balance_entries", ["id"], unique=False)
    op.create_index("ix_balance_entries_user_id", "balance_entries", ["user_id"], unique=False)

    op.create_table(
        "monthly_snapshots",
        sa.Column("id", sa.Integer(), primary_key=True),
        _owner(),
        sa.Column("month", sa.String(length=7), nullable=False),
        sa.Column("total_income_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_expenses_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_savings_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("burn_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("savings_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("health_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("active_goals_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed_goals_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_goals_value_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_goals_progress_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("income_streams_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("expenses_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("income_change_percent", sa.Float(), nullable=True),
        sa.Column("expense_change_percent", sa.Float(), nullable=True),
        sa.Column("savings_change_percent", sa.Float(), nullable=True),
        sa.Column("health_score_change", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "month", name="uq_monthly_snapshots_user_month"),
    )
    op.create_index("ix_monthly_snapshots_id", "monthly_snapshots", ["id"], unique=False)
    op.create_index("ix_monthly_snapshots_user_id", "monthly_snapshots", ["user_id"], unique=False)

    op.create_table(
        "purchase_plans",
        sa.Column("id", sa.Integer(), primary_key=True),
        _owner(),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("purchase_type", sa.String(length=20), nullable=False),
        sa.Column("target_amount_cents", sa.Integer(), nullable=False),
        sa.Column("current_saved_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("desired_timeline_months", sa.Integer(), nullable=False),
        sa.Column("down_payment_ratio", sa.Float(), nullable=True),
        sa.Column("appreciation_rate", sa.Float(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_purchase_plans_id", "purchase_plans", ["id"], unique=False)
    op.create_index("ix_purchase_plans_user_id", "purchase_plans", ["user_id"], unique=False)


def downgrade() -> None:
    for table in (
        "purchase_plans",
        "monthly_snapshots",
        "balance_entries",
        "goal_contributions",
        "goals",
        "one_time_expenses",
        "one_time_incomes",
        "expense_entries",
        "expenses",
        "income_entries",
        "income_streams",
        "users",
    ):
        op.drop_table(table)
