from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import Goal, GoalContribution, User
from ..schemas import ContributionCreate, ContributionSchema
from ..security import get_current_user
from ..services.goals import add_contribution, remove_contribution
from ..services.money import to_cents

router = APIRouter(prefix="/goals/{goal_id}/contributions", tags=["goals"])


def _goal_or_404(db: Session, user: User, goal_id: int) -> Goal:
    goal = db.query(Goal).filter(Goal.id == goal_id, Goal.user_id == user.id).first()
    if not goal:
        raise HTTPException(status_code=404, detail=f"Goal {goal_id} not found")
    return goal


@router.get("", response_model=list[ContributionSchema], summary="List contributions to a goal")
def list_contributions(goal_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    _goal_or_404(db, user, goal_id)
    return (
        db.query(GoalContribution)
        .filter(GoalContribution.goal_id == goal_id)
        .order_by(GoalContribution.month.desc(), GoalContribution.id.desc())
        .all()
    )


@router.post(
    "",
    response_model=ContributionSchema,
    status_code=201,
    summary="Move money from the balance into a goal",
)
def create_contribution(
    goal_id: int,
    payload: ContributionCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    goal = _goal_or_404(db, user, goal_id)
    month = (payload.month or date.today()).isoformat()
    return add_contribution(db, user, goal, to_cents(payload.amount), month, payload.notes)


@router.delete(
    "/{contribution_id}",
    status_code=204,
    summary="Delete a contribution and return its amount to the balance",
)
def delete_contribution(
    goal_id: int,
    contribution_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    goal = _goal_or_404(db, user, goal_id)
    contribution = (
        db.query(GoalContribution)
        .filter(GoalContribution.id == contribution_id, GoalContribution.goal_id == goal.id)
        .first()
    )
    if not contribution:
        raise HTTPException(status_code=404, detail=f"Contribution {contribution_id} not found")
    remove_contribution(db, user, goal, contribution)
