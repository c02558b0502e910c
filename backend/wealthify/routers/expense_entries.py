from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, joinedload

from ..database import get_db
from ..models import Expense, ExpenseEntry, User
from ..schemas import EntryUpdate, ExpenseEntryCreate, ExpenseEntrySchema
from ..security import get_current_user
from ..services.money import month_key, to_cents

router = APIRouter(prefix="/expense-entries", tags=["entries"])


def _to_schema(entry: ExpenseEntry) -> ExpenseEntrySchema:
    schema = ExpenseEntrySchema.model_validate(entry)
    if entry.expense:
        schema.expense_name = entry.expense.name
        schema.expense_category = entry.expense.category
    return schema


def _owned(db: Session, user: User):
    return (
        db.query(ExpenseEntry)
        .join(Expense, ExpenseEntry.expense_id == Expense.id)
        .filter(Expense.user_id == user.id)
        .options(joinedload(ExpenseEntry.expense))
    )


def _get_or_404(db: Session, user: User, entry_id: int) -> ExpenseEntry:
    entry = _owned(db, user).filter(ExpenseEntry.id == entry_id).first()
    if not entry:
        raise HTTPException(status_code=404, detail=f"Expense entry {entry_id} not found")
    return entry


@router.get("", response_model=list[ExpenseEntrySchema], summary="List expense entries")
def list_expense_entries(
    year: Optional[int] = Query(None, ge=1900, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    expense_id: Optional[int] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    q = _owned(db, user)
    if year is not None and month is not None:
        q = q.filter(ExpenseEntry.month == f"{year:04d}-{month:02d}")
    elif year is not None:
        q = q.filter(ExpenseEntry.month.like(f"{year:04d}-%"))
    elif month is not None:
        raise HTTPException(status_code=422, detail="month filter requires year")
    if expense_id is not None:
        q = q.filter(ExpenseEntry.expense_id == expense_id)
    return [_to_schema(e) for e in q.order_by(ExpenseEntry.month.desc(), ExpenseEntry.id.desc()).all()]


@router.post("", response_model=ExpenseEntrySchema, status_code=201, summary="Record an expense entry")
def create_expense_entry(
    payload: ExpenseEntryCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    expense = (
        db.query(Expense)
        .filter(Expense.id == payload.expense_id, Expense.user_id == user.id)
        .first()
    )
    if not expense:
        raise HTTPException(status_code=404, detail=f"Expense {payload.expense_id} not found")

    key = month_key(payload.month)
    exists = (
        db.query(ExpenseEntry)
        .filter(ExpenseEntry.expense_id == expense.id, ExpenseEntry.month == key)
        .first()
    )
    if exists:
        raise HTTPException(status_code=409, detail=f"An entry for {expense.name} in {key} already exists")

    entry = ExpenseEntry(
        expense_id=expense.id,
        month=key,
        amount_cents=to_cents(payload.amount),
        notes=payload.notes,
        is_generated=False,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return _to_schema(entry)


@router.get("/{entry_id}", response_model=ExpenseEntrySchema, summary="Get an expense entry")
def get_expense_entry(entry_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _to_schema(_get_or_404(db, user, entry_id))


@router.patch("/{entry_id}", response_model=ExpenseEntrySchema, summary="Edit an expense entry's amount or notes")
def update_expense_entry(
    entry_id: int,
    payload: EntryUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    entry = _get_or_404(db, user, entry_id)
    if "amount" in payload.model_fields_set and payload.amount is not None:
        entry.amount_cents = to_cents(payload.amount)
    if "notes" in payload.model_fields_set:
        entry.notes = payload.notes
    db.commit()
    db.refresh(entry)
    return _to_schema(entry)


@router.delete("/{entry_id}", status_code=204, summary="Delete an expense entry")
def delete_expense_entry(entry_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    entry = _get_or_404(db, user, entry_id)
    db.delete(entry)
    db.commit()
