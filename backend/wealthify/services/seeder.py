"""Idempotent demo user with a few months of history."""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ..models import Expense, Goal, IncomeStream, OneTimeExpense, OneTimeIncome, User
from ..security import hash_password
from .balance import apply_balance_change
from .entry_generation import generate_entries
from .goals import add_contribution
from .money import add_months, to_cents

logger = logging.getLogger(__name__)

DEMO_EMAIL = "demo@wealthify.app"
DEMO_PASSWORD = "password123"

# ─────────────────────────────────────────────────────────────────────────────
# Demo fixtures  (amounts in MYR; months_ago = how far back the definition starts)
# ─────────────────────────────────────────────────────────────────────────────

_INCOME_STREAMS = [
    # name, type, expected, actual, frequency, months_ago
    ("Software Engineer Salary",  "SALARY",     "8500.00", "8500.00", "MONTHLY", 3),
    ("Freelance Web Development", "FREELANCE",  "2000.00", "2300.00", "MONTHLY", 3),
    ("Investment Dividends",      "INVESTMENT", "500.00",  "480.00",  "MONTHLY", 2),
]

_EXPENSES = [
    # name, category, type, amount, frequency, months_ago
    ("Apartment Rent",                        "HOUSING",        "FIXED",    "2500.00", "MONTHLY", 3),
    ("Car Loan Payment",                      "TRANSPORTATION", "FIXED",    "800.00",  "MONTHLY", 3),
    ("Groceries & Food",                      "FOOD",           "VARIABLE", "150.00",  "WEEKLY",  3),
    ("Utilities (Electric, Water, Internet)", "UTILITIES",      "FIXED",    "350.00",  "MONTHLY", 3),
    ("Entertainment & Dining",                "ENTERTAINMENT",  "VARIABLE", "400.00",  "MONTHLY", 2),
    ("Car Insurance",                         "TRANSPORTATION", "FIXED",    "1800.00", "YEARLY",  3),
]

_GOALS = [
    # name, category, target, priority, years_ahead, contributions
    ("Emergency Fund",           "EMERGENCY_FUND", "30000.00",  1, 1, ["5000.00", "2500.00"]),
    ("House Down Payment",       "PROPERTY",       "80000.00",  2, 4, ["3000.00"]),
    ("Japan Trip",               "VACATION",       "12000.00",  3, 2, []),
]

_STARTING_BALANCE = "25000.00"


def _iso(d: date) -> str:
    return d.isoformat()


def seed_demo_user(db: Session, today: Optional[date] = None) -> Optional[User]:
    """Create the demo user and its data. Does nothing if the user exists."""
    if db.query(User).filter(User.email == DEMO_EMAIL).first():
        return None

    today = today or date.today()

    user = User(email=DEMO_EMAIL, name="Demo User", password_hash=hash_password(DEMO_PASSWORD))
    db.add(user)
    db.commit()
    db.refresh(user)

    apply_balance_change(db, user, to_cents(_STARTING_BALANCE), "MANUAL_UPDATE", notes="Opening balance")
    db.commit()

    for name, type_, expected, actual, frequency, months_ago in _INCOME_STREAMS:
        stream = IncomeStream(
            user_id=user.id,
            name=name,
            type=type_,
            expected_monthly_cents=to_cents(expected),
            actual_monthly_cents=to_cents(actual),
            frequency=frequency,
            earned_date=_iso(add_months(today, -months_ago)),
        )
        db.add(stream)
        db.commit()
        generate_entries(db, "income", stream.id, today=today)

    for name, category, type_, amount, frequency, months_ago in _EXPENSES:
        expense = Expense(
            user_id=user.id,
            name=name,
            category=category,
            type=type_,
            amount_cents=to_cents(amount),
            frequency=frequency,
            incurred_date=_iso(add_months(today, -months_ago)),
        )
        db.add(expense)
        db.commit()
        generate_entries(db, "expense", expense.id, today=today)

    for name, category, target, priority, years_ahead, contributions in _GOALS:
        goal = Goal(
            user_id=user.id,
            name=name,
            target_amount_cents=to_cents(target),
            target_date=_iso(date(today.year + years_ahead, today.month, 1)),
            priority=priority,
            category=category,
        )
        db.add(goal)
        db.commit()
        for i, amount in enumerate(contributions):
            add_contribution(
                db, user, goal, to_cents(amount),
                month=_iso(add_months(today, -(len(contributions) - i))),
                notes="Demo contribution",
            )

    last_month = add_months(today, -1)
    db.add(OneTimeIncome(
        user_id=user.id, name="Performance Bonus", amount_cents=to_cents("3000.00"),
        date=_iso(last_month.replace(day=15)), category="Bonus",
    ))
    db.add(OneTimeExpense(
        user_id=user.id, name="Laptop Repair", amount_cents=to_cents("650.00"),
        date=_iso(last_month.replace(day=20)), category="Electronics",
    ))
    db.commit()

    logger.info("Seeded demo user %s", DEMO_EMAIL)
    return user
