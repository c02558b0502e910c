"""Month-by-month ledger totals and persisted monthly snapshots."""

import logging
from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models import (
    Expense,
    ExpenseEntry,
    Goal,
    IncomeEntry,
    IncomeStream,
    MonthlySnapshot,
    OneTimeExpense,
    OneTimeIncome,
    User,
)
from . import calculations as calc
from .money import add_months, month_bounds, month_key

logger = logging.getLogger(__name__)


def _entry_total(db: Session, entry_model, definition_model, fk, user_id: int, month: str) -> int:
    return (
        db.query(func.coalesce(func.sum(entry_model.amount_cents), 0))
        .join(definition_model, fk == definition_model.id)
        .filter(definition_model.user_id == user_id, entry_model.month == month)
        .scalar()
    )


def _one_time_total(db: Session, model, user_id: int, first: str, last: str) -> int:
    return (
        db.query(func.coalesce(func.sum(model.amount_cents), 0))
        .filter(model.user_id == user_id, model.date >= first, model.date <= last)
        .scalar()
    )


def monthly_ledger(db: Session, user: User, months: int = 6, today: Optional[date] = None) -> list[dict]:
    """Recorded income and expenses for the last ``months`` months, oldest first.

    Income is income entries plus one-time income; expenses likewise.
    ``cumulative_net_cents`` is the running sum across the window.
    """
    today = today or date.today()
    rows = []
    cumulative = 0
    for offset in range(months - 1, -1, -1):
        start = add_months(today, -offset)
        key = month_key(start)
        first, last = month_bounds(start.year, start.month)

        income = _entry_total(
            db, IncomeEntry, IncomeStream, IncomeEntry.income_stream_id, user.id, key
        ) + _one_time_total(db, OneTimeIncome, user.id, first, last)
        expenses = _entry_total(
            db, ExpenseEntry, Expense, ExpenseEntry.expense_id, user.id, key
        ) + _one_time_total(db, OneTimeExpense, user.id, first, last)

        net = income - expenses
        cumulative += net
        rows.append({
            "month": key,
            "income_cents": income,
            "expenses_cents": expenses,
            "net_cents": net,
            "cumulative_net_cents": cumulative,
        })
    return rows


# ─────────────────────────────────────────────────────────────────────────────
# Snapshots
# ─────────────────────────────────────────────────────────────────────────────


def current_metrics(db: Session, user: User) -> dict:
    """Steady-state monthly figures from the user's active definitions and goals."""
    streams = db.query(IncomeStream).filter(
        IncomeStream.user_id == user.id, IncomeStream.is_active.is_(True)
    ).all()
    expenses = db.query(Expense).filter(
        Expense.user_id == user.id, Expense.is_active.is_(True)
    ).all()
    goals = db.query(Goal).filter(Goal.user_id == user.id).all()

    income = calc.monthly_income_cents(streams)
    spent = calc.monthly_expenses_cents(expenses)
    burn = calc.burn_rate(spent, income)
    savings = calc.savings_rate(income, spent)
    progress = calc.average_goal_progress(goals)

    return {
        "total_income_cents": income,
        "total_expenses_cents": spent,
        "total_savings_cents": income - spent,
        "burn_rate": round(burn, 2),
        "savings_rate": round(savings, 2),
        "health_score": calc.health_score(burn, savings, progress),
        "active_goals_count": sum(1 for g in goals if not g.is_completed),
        "completed_goals_count": sum(1 for g in goals if g.is_completed),
        "total_goals_value_cents": sum(g.target_amount_cents for g in goals),
        "total_goals_progress_cents": sum(g.current_amount_cents for g in goals),
        "income_streams_count": len(streams),
        "expenses_count": len(expenses),
    }


def build_snapshot(db: Session, user: User, today: Optional[date] = None) -> MonthlySnapshot:
    """Compute this month's snapshot and upsert it on (user, month)."""
    today = today or date.today()
    key = month_key(today)
    metrics = current_metrics(db, user)

    previous = (
        db.query(MonthlySnapshot)
        .filter(
            MonthlySnapshot.user_id == user.id,
            MonthlySnapshot.month == month_key(add_months(today, -1)),
        )
        .first()
    )
    if previous is not None:
        metrics["income_change_percent"] = round(
            calc.monthly_change(metrics["total_income_cents"], previous.total_income_cents), 2
        )
        metrics["expense_change_percent"] = round(
            calc.monthly_change(metrics["total_expenses_cents"], previous.total_expenses_cents), 2
        )
        metrics["savings_change_percent"] = round(
            calc.monthly_change(metrics["total_savings_cents"], previous.total_savings_cents), 2
        )
        metrics["health_score_change"] = metrics["health_score"] - previous.health_score
    else:
        metrics.update(
            income_change_percent=None,
            expense_change_percent=None,
            savings_change_percent=None,
            health_score_change=None,
        )

    snapshot = (
        db.query(MonthlySnapshot)
        .filter(MonthlySnapshot.user_id == user.id, MonthlySnapshot.month == key)
        .first()
    )
    if snapshot is None:
        snapshot = MonthlySnapshot(user_id=user.id, month=key)
        db.add(snapshot)
    for field, value in metrics.items():
        setattr(snapshot, field, value)

    db.commit()
    db.refresh(snapshot)
    logger.info("Snapshot %s for user %d: health score %d", key, user.id, snapshot.health_score)
    return snapshot


def list_snapshots(
    db: Session, user: User, months: int = 6, today: Optional[date] = None
) -> list[MonthlySnapshot]:
    """Snapshots from ``months`` months back up to now, newest first."""
    today = today or date.today()
    since = month_key(add_months(today, -months))
    return (
        db.query(MonthlySnapshot)
        .filter(MonthlySnapshot.user_id == user.id, MonthlySnapshot.month >= since)
        .order_by(MonthlySnapshot.month.desc())
        .all()
    )
