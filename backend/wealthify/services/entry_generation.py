"""Monthly ledger generation for recurring income streams and expenses.

A recurring definition (an ``IncomeStream`` or an ``Expense``) is expanded
into one entry per calendar month, from the month it started to the current
month (or its end month, whichever comes first).  Generation only ever fills
gaps: a month that already has an entry, generated or manually recorded,
is left alone, so running it repeatedly is safe.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Expense, ExpenseEntry, IncomeEntry, IncomeStream, User
from .money import add_months, iter_months, month_key, monthly_cents, parse_month

logger = logging.getLogger(__name__)

# kind → (definition model, entry model, entry FK column name, start-date attribute)
_KINDS = {
    "income": (IncomeStream, IncomeEntry, "income_stream_id", "earned_date"),
    "expense": (Expense, ExpenseEntry, "expense_id", "incurred_date"),
}

KINDS = tuple(_KINDS)


def _kind(kind: str):
    try:
        return _KINDS[kind]
    except KeyError:
        raise ValueError(f"unknown entry kind {kind!r}") from None


def _today(today: Optional[date]) -> date:
    return today or date.today()


def start_month(definition, start_attr: str, today: date) -> date:
    """First ledger month: the start date's month, else the creation month."""
    value = getattr(definition, start_attr)
    if value:
        return parse_month(value)
    created = definition.created_at
    if created is None:
        return date(today.year, today.month, 1)
    return date(created.year, created.month, 1)


def end_month(definition, today: date) -> date:
    """Last ledger month: the end date's month, capped at the current month."""
    current = date(today.year, today.month, 1)
    if definition.end_date:
        return min(parse_month(definition.end_date), current)
    return current


def _existing_months(db: Session, entry_model, fk: str, definition_id: int) -> set[str]:
    fk_col = getattr(entry_model, fk)
    return {m for (m,) in db.query(entry_model.month).filter(fk_col == definition_id).all()}


# ─────────────────────────────────────────────────────────────────────────────
# Single definition
# ─────────────────────────────────────────────────────────────────────────────


def generate_entries(
    db: Session, kind: str, definition_id: int, today: Optional[date] = None
) -> dict:
    """Create the missing monthly entries for one definition.

    Raises ``LookupError`` when the definition does not exist.
    """
    model, entry_model, fk, start_attr = _kind(kind)
    today = _today(today)

    definition = db.get(model, definition_id)
    if definition is None:
        raise LookupError(f"{kind} definition {definition_id} not found")

    first = start_month(definition, start_attr, today)
    last = end_month(definition, today)
    existing_months = _existing_months(db, entry_model, fk, definition_id)
    amount = monthly_cents(definition.effective_monthly_cents, definition.frequency)

    generated = existing = skipped = total = 0
    for month in iter_months(first, last):
        total += 1
        key = month_key(month)
        if key in existing_months:
            existing += 1
            continue
        # ONE_TIME definitions are booked in their start month only.
        if definition.frequency == "ONE_TIME" and month != first:
            skipped += 1
            continue
        db.add(
            entry_model(
                **{fk: definition_id},
                month=key,
                amount_cents=amount,
                notes=f"Auto-generated from {definition.name}",
                is_generated=True,
            )
        )
        generated += 1

    db.commit()

    message = (
        f"Generated {generated} {kind} entries for {definition.name} "
        f"({existing} existing, {skipped} skipped)"
    )
    logger.info(message)
    return {
        "generated": generated,
        "existing": existing,
        "skipped": skipped,
        "total_months": total,
        "message": message,
    }


def _delete(db: Session, kind: str, definition_id: int) -> int:
    _model, entry_model, fk, _start = _kind(kind)
    return (
        db.query(entry_model)
        .filter(getattr(entry_model, fk) == definition_id)
        .delete(synchronize_session="fetch")
    )


def delete_entries(db: Session, kind: str, definition_id: int) -> int:
    """Remove every entry of one definition. Returns the number deleted."""
    deleted = _delete(db, kind, definition_id)
    db.commit()
    logger.info("Deleted %d %s entries for definition %d", deleted, kind, definition_id)
    return deleted


def regenerate_entries(
    db: Session, kind: str, definition_id: int, today: Optional[date] = None
) -> dict:
    """Drop all entries of a definition and build them again from its schedule."""
    deleted = _delete(db, kind, definition_id)
    result = generate_entries(db, kind, definition_id, today=today)
    result["deleted"] = deleted
    return result


def update_future_entries(
    db: Session,
    kind: str,
    definition_id: int,
    new_amount_cents: int,
    today: Optional[date] = None,
) -> int:
    """Re-price the current and later months. Historical months keep their amount."""
    model, entry_model, fk, _start = _kind(kind)
    today = _today(today)

    definition = db.get(model, definition_id)
    if definition is None:
        raise LookupError(f"{kind} definition {definition_id} not found")

    amount = monthly_cents(new_amount_cents, definition.frequency)
    updated = (
        db.query(entry_model)
        .filter(
            getattr(entry_model, fk) == definition_id,
            entry_model.month >= month_key(today),
        )
        .update({"amount_cents": amount}, synchronize_session="fetch")
    )
    db.commit()
    logger.info("Updated %d current/future %s entries for definition %d", updated, kind, definition_id)
    return updated


# ─────────────────────────────────────────────────────────────────────────────
# Whole user
# ─────────────────────────────────────────────────────────────────────────────


def _active_definitions(db: Session, kind: str, user: User) -> list:
    model = _kind(kind)[0]
    return (
        db.query(model)
        .filter(model.user_id == user.id, model.is_active.is_(True))
        .order_by(model.id)
        .all()
    )


def generate_missing_entries(
    db: Session, user: User, kind: str = "all", today: Optional[date] = None
) -> dict:
    """Fill ledger gaps for every active definition of ``user``."""
    kinds = KINDS if kind == "all" else (kind,)
    counts = {"income": 0, "expense": 0}
    for k in kinds:
        for definition in _active_definitions(db, k, user):
            counts[k] += generate_entries(db, k, definition.id, today=today)["generated"]

    total = counts["income"] + counts["expense"]
    logger.info("Generated %d missing entries for user %d", total, user.id)
    return {
        "income_entries": counts["income"],
        "expense_entries": counts["expense"],
        "total": total,
        "message": f"Generated {total} missing entries",
    }


def generate_upcoming_month_entries(
    db: Session, user: User, today: Optional[date] = None
) -> int:
    """Create next month's entry for each active recurring definition, if absent."""
    today = _today(today)
    upcoming = add_months(today, 1)
    key = month_key(upcoming)
    label = upcoming.strftime("%B %Y")

    created = 0
    for kind in KINDS:
        _model, entry_model, fk, start_attr = _kind(kind)
        for definition in _active_definitions(db, kind, user):
            if definition.frequency == "ONE_TIME":
                continue
            if start_month(definition, start_attr, today) > upcoming:
                continue
            if definition.end_date and parse_month(definition.end_date) < upcoming:
                continue
            if key in _existing_months(db, entry_model, fk, definition.id):
                continue
            db.add(
                entry_model(
                    **{fk: definition.id},
                    month=key,
                    amount_cents=monthly_cents(definition.effective_monthly_cents, definition.frequency),
                    notes=f"Auto-generated for {label}",
                    is_generated=True,
                )
            )
            created += 1

    db.commit()
    logger.info("Generated %d entries for %s (user %d)", created, key, user.id)
    return created


# ─────────────────────────────────────────────────────────────────────────────
# Definition lifecycle
# ─────────────────────────────────────────────────────────────────────────────


def sync_entries(
    db: Session,
    kind: str,
    definition_id: int,
    *,
    schedule_changed: bool = True,
    amount_changed: bool = False,
    today: Optional[date] = None,
) -> Optional[dict]:
    """Bring a definition's ledger in line after it was created or edited.

    A new or rescheduled definition is regenerated from scratch; an amount-only
    edit re-prices the current and future months.  Database errors are logged
    and rolled back so the definition itself is never lost.
    """
    try:
        if schedule_changed:
            return regenerate_entries(db, kind, definition_id, today=today)
        if amount_changed:
            model = _kind(kind)[0]
            definition = db.get(model, definition_id)
            updated = update_future_entries(
                db, kind, definition_id, definition.effective_monthly_cents, today=today
            )
            return {"updated": updated}
        return None
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Entry sync failed for %s definition %d", kind, definition_id)
        return None
