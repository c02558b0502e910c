from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import Expense, Goal, IncomeStream, User
from ..schemas import GoalSchema
from ..security import get_current_user
from ..services import calculations as calc
from ..services.money import cents_to_amount
from ..services.snapshots import current_metrics, monthly_ledger

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("", summary="Balance, budget health, goals and the last six months at a glance")
def dashboard(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    today = date.today()
    metrics = current_metrics(db, user)
    ledger = monthly_ledger(db, user, months=6, today=today)

    goals = (
        db.query(Goal)
        .filter(Goal.user_id == user.id)
        .order_by(Goal.priority.asc(), Goal.target_date.asc(), Goal.id.asc())
        .all()
    )
    open_goals = [g for g in goals if not g.is_completed]
    streams = db.query(IncomeStream).filter(IncomeStream.user_id == user.id).all()
    expenses = db.query(Expense).filter(Expense.user_id == user.id).all()
    accumulated = calc.accumulated_balance(user.starting_balance_cents or 0, streams, expenses, today)

    balance = user.current_balance_cents or 0
    return {
        "balance": {
            "current_balance_cents": balance,
            "current_balance": cents_to_amount(balance),
            "starting_balance_cents": user.starting_balance_cents or 0,
            "balance_updated_at": user.balance_updated_at,
            "calculated_balance_cents": accumulated["current_calculated_balance_cents"],
        },
        "budget": {
            **metrics,
            "monthly_income": cents_to_amount(metrics["total_income_cents"]),
            "monthly_expenses": cents_to_amount(metrics["total_expenses_cents"]),
            "emergency_fund_months": round(
                calc.emergency_runway(balance, metrics["total_expenses_cents"]), 2
            ),
        },
        "lifestyle": calc.lifestyle_metrics(streams, expenses),
        "current_month": ledger[-1],
        "ledger": ledger,
        "goals": {
            "average_progress": round(calc.average_goal_progress(goals), 2),
            "top": [GoalSchema.model_validate(g).model_dump() for g in open_goals[:3]],
            "allocations": calc.goal_allocations(
                open_goals,
                max(0, metrics["total_income_cents"] - metrics["total_expenses_cents"]),
                today,
            ),
        },
    }
