from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import Expense, Goal, IncomeStream, User
from ..schemas import AffordabilityRequest, LifestyleAffordabilityRequest, SnapshotSchema
from ..security import get_current_user
from ..services import calculations as calc
from ..services.insights import collect_analytics, comparison_table, generate_insights
from ..services.money import parse_date, parse_month, to_cents
from ..services.snapshots import list_snapshots, monthly_ledger

router = APIRouter(prefix="/analytics", tags=["analytics"])


def _definitions(db: Session, user: User) -> tuple[list[IncomeStream], list[Expense]]:
    streams = db.query(IncomeStream).filter(
        IncomeStream.user_id == user.id, IncomeStream.is_active.is_(True)
    ).all()
    expenses = db.query(Expense).filter(
        Expense.user_id == user.id, Expense.is_active.is_(True)
    ).all()
    return streams, expenses


def _budget(db: Session, user: User) -> dict:
    streams, expenses = _definitions(db, user)
    return {
        "income": calc.monthly_income_cents(streams),
        "expenses": calc.monthly_expenses_cents(expenses),
        "streams": sum(1 for s in streams if s.frequency != "ONE_TIME"),
    }


def _monthly_debt_cents(db: Session, user: User, today: date) -> int:
    """Monthly amount needed to clear open DEBT_PAYOFF goals by their target dates."""
    goals = db.query(Goal).filter(
        Goal.user_id == user.id,
        Goal.category == "DEBT_PAYOFF",
        Goal.is_completed.is_(False),
    ).all()
    return sum(
        calc.required_monthly_savings(
            g.target_amount_cents,
            g.current_amount_cents,
            max(1, calc.months_until(parse_date(g.target_date), today)),
        )
        for g in goals
    )


@router.get("/trends", summary="Recorded monthly income/expenses plus stored snapshots")
def trends(
    months: int = Query(6, ge=1, le=60),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {
        "ledger": monthly_ledger(db, user, months=months),
        "snapshots": [
            SnapshotSchema.model_validate(s).model_dump()
            for s in list_snapshots(db, user, months=months)
        ],
    }


@router.get("/insights", summary="Rule-based warnings, opportunities and achievements")
def insights(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return generate_insights(collect_analytics(db, user))


@router.get("/comparison", summary="This month's snapshot against last month's")
def comparison(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return comparison_table(list_snapshots(db, user, months=6))


@router.get("/runway", summary="How long the balance lasts at the current burn")
def runway(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    budget = _budget(db, user)
    balance = user.current_balance_cents or 0
    result = calc.financial_runway(balance, budget["income"], budget["expenses"], date.today())
    result["emergency_fund_months"] = round(calc.emergency_runway(balance, budget["expenses"]), 2)
    return result


@router.get("/projections", summary="Straight-line balance forecast")
def projections(
    months: int = Query(12, ge=1, le=60),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    budget = _budget(db, user)
    return calc.balance_projections(
        user.current_balance_cents or 0, budget["income"], budget["expenses"], months, date.today()
    )


@router.get("/risk", summary="Overall financial risk level and contributing factors")
def risk(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    today = date.today()
    budget = _budget(db, user)
    burn = calc.burn_rate(budget["expenses"], budget["income"])
    emergency = calc.emergency_runway(user.current_balance_cents or 0, budget["expenses"])
    dti = calc.debt_to_income(_monthly_debt_cents(db, user, today), budget["income"])
    result = calc.assess_risk(burn, emergency, dti, budget["streams"])
    result.update(
        burn_rate=round(burn, 2),
        emergency_fund_months=round(emergency, 2),
        debt_to_income=round(dti, 2),
        income_streams=budget["streams"],
    )
    return result


@router.get("/goal-allocations", summary="Suggested split of monthly savings across open goals")
def goal_allocations(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    budget = _budget(db, user)
    goals = db.query(Goal).filter(Goal.user_id == user.id, Goal.is_completed.is_(False)).all()
    available = max(0, budget["income"] - budget["expenses"])
    return {
        "available_monthly_savings_cents": available,
        "allocations": calc.goal_allocations(goals, available, date.today()),
    }


@router.post("/affordability", summary="Can a target amount be reached, and on what income")
def affordability(
    payload: AffordabilityRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    budget = _budget(db, user)
    return calc.analyze_affordability(
        to_cents(payload.target_amount),
        to_cents(payload.current_amount),
        budget["income"],
        budget["expenses"],
        payload.timeline_months,
    )


# ─────────────────────────────────────────────────────────────────────────────
# Lifestyle
# ─────────────────────────────────────────────────────────────────────────────


@router.get("/lifestyle", summary="Recurring vs one-time split, risk score and sustainability")
def lifestyle(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    streams, expenses = _definitions(db, user)
    return calc.lifestyle_metrics(streams, expenses)


@router.get("/burn-scenarios", summary="Burn rate after an income drop or an expense rise")
def burn_scenarios(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    budget = _budget(db, user)
    return calc.burn_rate_scenarios(budget["income"], budget["expenses"])


@router.get("/accumulated-balance", summary="Running balance implied by income and expenses since the start")
def accumulated_balance(
    from_month: Optional[str] = Query(None, pattern=r"^\d{4}-(0[1-9]|1[0-2])$"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    streams, expenses = _definitions(db, user)
    return calc.accumulated_balance(
        user.starting_balance_cents or 0,
        streams,
        expenses,
        date.today(),
        parse_month(from_month) if from_month else None,
    )


@router.post("/lifestyle-affordability", summary="Does the monthly surplus cover a set of goals")
def lifestyle_affordability(
    payload: LifestyleAffordabilityRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    today = date.today()
    budget = _budget(db, user)
    if payload.goals is None:
        goals = db.query(Goal).filter(Goal.user_id == user.id, Goal.is_completed.is_(False)).all()
        commitments = [
            (
                max(0, g.target_amount_cents - g.current_amount_cents),
                max(1, calc.months_until(parse_date(g.target_date), today)),
            )
            for g in goals
        ]
    else:
        commitments = [(to_cents(c.amount), c.months_to_target) for c in payload.goals]
    return calc.lifestyle_affordability(budget["income"], budget["expenses"], commitments)
