from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)   # lower-cased
    name = Column(String(100), nullable=False)
    password_hash = Column(String(100), nullable=False)
    currency = Column(String(3), nullable=False, default="MYR")
    current_balance_cents = Column(Integer, nullable=False, default=0)
    starting_balance_cents = Column(Integer, nullable=False, default=0)
    balance_updated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    income_streams = relationship("IncomeStream", back_populates="user", cascade="all, delete-orphan")
    expenses = relationship("Expense", back_populates="user", cascade="all, delete-orphan")
    goals = relationship("Goal", back_populates="user", cascade="all, delete-orphan")
    balance_entries = relationship(
        "BalanceEntry",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="BalanceEntry.id.desc()",
    )


# ── Recurring definitions and their monthly ledger ───────────────────────────


class IncomeStream(Base):
    __tablename__ = "income_streams"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    type = Column(String(20), nullable=False, default="SALARY")
    expected_monthly_cents = Column(Integer, nullable=False)
    actual_monthly_cents = Column(Integer, nullable=True)
    frequency = Column(String(20), nullable=False, default="MONTHLY")
    earned_date = Column(String(10), nullable=True)    # YYYY-MM-DD
    end_date = Column(String(10), nullable=True)       # YYYY-MM-DD
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    user = relationship("User", back_populates="income_streams")
    entries = relationship(
        "IncomeEntry",
        back_populates="income_stream",
        cascade="all, delete-orphan",
        order_by="IncomeEntry.month.desc()",
    )

    @property
    def effective_monthly_cents(self) -> int:
        if self.actual_monthly_cents is not None:
            return self.actual_monthly_cents
        return self.expected_monthly_cents


class IncomeEntry(Base):
    __tablename__ = "income_entries"
    __table_args__ = (UniqueConstraint("income_stream_id", "month", name="uq_income_entries_stream_month"),)

    id = Column(Integer, primary_key=True, index=True)
    income_stream_id = Column(
        Integer, ForeignKey("income_streams.id", ondelete="CASCADE"), nullable=False, index=True
    )
    month = Column(String(7), nullable=False)          # YYYY-MM
    amount_cents = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)
    is_generated = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=_utcnow)

    income_stream = relationship("IncomeStream", back_populates="entries")


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    category = Column(String(20), nullable=False, default="OTHER")
    type = Column(String(20), nullable=False, default="FIXED")
    amount_cents = Column(Integer, nullable=False)
    frequency = Column(String(20), nullable=False, default="MONTHLY")
    incurred_date = Column(String(10), nullable=True)
    end_date = Column(String(10), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    user = relationship("User", back_populates="expenses")
    entries = relationship(
        "ExpenseEntry",
        back_populates="expense",
        cascade="all, delete-orphan",
        order_by="ExpenseEntry.month.desc()",
    )

    @property
    def effective_monthly_cents(self) -> int:
        return self.amount_cents


class ExpenseEntry(Base):
    __tablename__ = "expense_entries"
    __table_args__ = (UniqueConstraint("expense_id", "month", name="uq_expense_entries_expense_month"),)

    id = Column(Integer, primary_key=True, index=True)
    expense_id = Column(Integer, ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False, index=True)
    month = Column(String(7), nullable=False)
    amount_cents = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)
    is_generated = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=_utcnow)

    expense = relationship("Expense", back_populates="entries")


# ── One-off transactions ──────────────────────────────────────────────────────


class OneTimeIncome(Base):
    __tablename__ = "one_time_incomes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    amount_cents = Column(Integer, nullable=False)
    date = Column(String(10), nullable=False)
    category = Column(String(50), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


class OneTimeExpense(Base):
    __tablename__ = "one_time_expenses"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    amount_cents = Column(Integer, nullable=False)
    date = Column(String(10), nullable=False)
    category = Column(String(50), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


# ── Goals ─────────────────────────────────────────────────────────────────────


class Goal(Base):
    __tablename__ = "goals"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    target_amount_cents = Column(Integer, nullable=False)
    current_amount_cents = Column(Integer, nullable=False, default=0)
    target_date = Column(String(10), nullable=False)
    priority = Column(Integer, nullable=False, default=1)   # 1 = most important
    category = Column(String(20), nullable=False, default="OTHER")
    is_completed = Column(Boolean, nullable=False, default=False)
    image_path = Column(String(255), nullable=True)         # relative to MEDIA_DIR
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    user = relationship("User", back_populates="goals")
    contributions = relationship(
        "GoalContribution",
        back_populates="goal",
        cascade="all, delete-orphan",
        order_by="GoalContribution.month.desc()",
    )


class GoalContribution(Base):
    __tablename__ = "goal_contributions"

    id = Column(Integer, primary_key=True, index=True)
    goal_id = Column(Integer, ForeignKey("goals.id", ondelete="CASCADE"), nullable=False, index=True)
    amount_cents = Column(Integer, nullable=False)
    month = Column(String(10), nullable=False)      # YYYY-MM-DD
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=_utcnow)

    goal = relationship("Goal", back_populates="contributions")


# ── Balance ledger, snapshots, plans ──────────────────────────────────────────


class BalanceEntry(Base):
    __tablename__ = "balance_entries"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    amount_cents = Column(Integer, nullable=False)            # balance after the change
    previous_amount_cents = Column(Integer, nullable=False)
    change_amount_cents = Column(Integer, nullable=False)
    entry_type = Column(String(20), nullable=False, default="MANUAL_UPDATE")
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=_utcnow)

    user = relationship("User", back_populates="balance_entries")


class MonthlySnapshot(Base):
    __tablename__ = "monthly_snapshots"
    __table_args__ = (UniqueConstraint("user_id", "month", name="uq_monthly_snapshots_user_month"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    month = Column(String(7), nullable=False)
    total_income_cents = Column(Integer, nullable=False, default=0)
    total_expenses_cents = Column(Integer, nullable=False, default=0)
    total_savings_cents = Column(Integer, nullable=False, default=0)
    burn_rate = Column(Float, nullable=False, default=0.0)
    savings_rate = Column(Float, nullable=False, default=0.0)
    health_score = Column(Integer, nullable=False, default=0)
    active_goals_count = Column(Integer, nullable=False, default=0)
    completed_goals_count = Column(Integer, nullable=False, default=0)
    total_goals_value_cents = Column(Integer, nullable=False, default=0)
    total_goals_progress_cents = Column(Integer, nullable=False, default=0)
    income_streams_count = Column(Integer, nullable=False, default=0)
    expenses_count = Column(Integer, nullable=False, default=0)
    income_change_percent = Column(Float, nullable=True)
    expense_change_percent = Column(Float, nullable=True)
    savings_change_percent = Column(Float, nullable=True)
    health_score_change = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


class PurchasePlan(Base):
    __tablename__ = "purchase_plans"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    purchase_type = Column(String(20), nullable=False)   # house | vehicle | wedding | business | custom
    target_amount_cents = Column(Integer, nullable=False)
    current_saved_cents = Column(Integer, nullable=False, default=0)
    desired_timeline_months = Column(Integer, nullable=False)
    down_payment_ratio = Column(Float, nullable=True)
    appreciation_rate = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)
