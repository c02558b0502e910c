"""Goal contributions: moving money from the spendable balance into a goal."""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Goal, GoalContribution, User
from .balance import adjust_balance

logger = logging.getLogger(__name__)


def add_contribution(
    db: Session,
    user: User,
    goal: Goal,
    amount_cents: int,
    month: str,
    notes: Optional[str] = None,
) -> GoalContribution:
    """Record a contribution, grow the goal and debit the user's balance.

    Everything lands in a single commit; on a database error nothing is kept.
    """
    contribution = GoalContribution(goal_id=goal.id, amount_cents=amount_cents, month=month, notes=notes)
    try:
        db.add(contribution)
        goal.current_amount_cents += amount_cents
        goal.is_completed = goal.current_amount_cents >= goal.target_amount_cents
        adjust_balance(
            db, user, -amount_cents, "GOAL_CONTRIBUTION",
            notes=f"Contribution to goal: {goal.name}",
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to record contribution to goal %d", goal.id)
        raise
    db.refresh(contribution)
    return contribution


def remove_contribution(db: Session, user: User, goal: Goal, contribution: GoalContribution) -> None:
    """Undo a contribution: shrink the goal and credit the balance back."""
    amount = contribution.amount_cents
    try:
        db.delete(contribution)
        goal.current_amount_cents = max(0, goal.current_amount_cents - amount)
        goal.is_completed = goal.current_amount_cents >= goal.target_amount_cents
        adjust_balance(
            db, user, amount, "GOAL_WITHDRAWAL",
            notes=f"Contribution removed from goal: {goal.name}",
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to remove contribution %d from goal %d", contribution.id, goal.id)
        raise
