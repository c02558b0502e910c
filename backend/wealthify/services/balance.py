"""Running balance and its append-only ledger.

``users.current_balance_cents`` always equals the ``amount_cents`` of the
user's newest ``balance_entries`` row.  Both helpers here only stage the
change on the session; the caller commits, so a balance move can share one
transaction with whatever caused it (e.g. a goal contribution).
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ..models import BalanceEntry, User

logger = logging.getLogger(__name__)

ENTRY_TYPES = ("MANUAL_UPDATE", "GOAL_CONTRIBUTION", "GOAL_WITHDRAWAL", "CORRECTION")


def apply_balance_change(
    db: Session,
    user: User,
    new_balance_cents: int,
    entry_type: str = "MANUAL_UPDATE",
    notes: Optional[str] = None,
) -> BalanceEntry:
    """Set the user's balance to ``new_balance_cents`` and record the move."""
    if entry_type not in ENTRY_TYPES:
        raise ValueError(f"unknown balance entry type {entry_type!r}")

    previous = user.current_balance_cents or 0
    entry = BalanceEntry(
        user_id=user.id,
        amount_cents=new_balance_cents,
        previous_amount_cents=previous,
        change_amount_cents=new_balance_cents - previous,
        entry_type=entry_type,
        notes=notes,
    )
    db.add(entry)

    user.current_balance_cents = new_balance_cents
    user.balance_updated_at = datetime.now(timezone.utc)
    # The first manual update fixes the baseline.
    if entry_type == "MANUAL_UPDATE" and not user.starting_balance_cents:
        user.starting_balance_cents = new_balance_cents

    logger.info(
        "Balance for user %d: %d → %d (%s)", user.id, previous, new_balance_cents, entry_type
    )
    return entry


def adjust_balance(
    db: Session,
    user: User,
    delta_cents: int,
    entry_type: str,
    notes: Optional[str] = None,
) -> BalanceEntry:
    return apply_balance_change(
        db, user, (user.current_balance_cents or 0) + delta_cents, entry_type, notes
    )


def recent_entries(db: Session, user: User, limit: int = 10) -> list[BalanceEntry]:
    return (
        db.query(BalanceEntry)
        .filter(BalanceEntry.user_id == user.id)
        .order_by(BalanceEntry.id.desc())
        .limit(limit)
        .all()
    )
