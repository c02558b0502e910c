from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import Expense, User
from ..schemas import ExpenseCreate, ExpenseSchema, ExpenseUpdate
from ..security import get_current_user
from ..services.entry_generation import sync_entries
from ..services.money import to_cents

router = APIRouter(prefix="/expenses", tags=["expenses"])

_SCHEDULE_FIELDS = {"incurred_date", "end_date", "frequency"}
_REQUIRED = {"name", "category", "type", "amount", "frequency", "is_active"}


def _get_or_404(db: Session, user: User, expense_id: int) -> Expense:
    expense = (
        db.query(Expense)
        .filter(Expense.id == expense_id, Expense.user_id == user.id)
        .first()
    )
    if not expense:
        raise HTTPException(status_code=404, detail=f"Expense {expense_id} not found")
    return expense


def _column_values(data: dict) -> dict:
    values = {}
    for field, val in data.items():
        if field == "amount":
            values["amount_cents"] = to_cents(val)
        elif field in ("incurred_date", "end_date"):
            values[field] = val.isoformat() if val else None
        else:
            values[field] = val
    return values


@router.get("", response_model=list[ExpenseSchema], summary="List expenses")
def list_expenses(
    is_active: Optional[bool] = Query(None),
    category: Optional[str] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    q = db.query(Expense).filter(Expense.user_id == user.id)
    if is_active is not None:
        q = q.filter(Expense.is_active.is_(is_active))
    if category:
        q = q.filter(Expense.category == category)
    return q.order_by(Expense.created_at.desc(), Expense.id.desc()).all()


@router.post("", response_model=ExpenseSchema, status_code=201, summary="Create an expense")
def create_expense(
    payload: ExpenseCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    expense = Expense(user_id=user.id, **_column_values(payload.model_dump()))
    db.add(expense)
    db.commit()
    db.refresh(expense)
    sync_entries(db, "expense", expense.id)
    db.refresh(expense)
    return expense


@router.get("/{expense_id}", response_model=ExpenseSchema, summary="Get an expense")
def get_expense(expense_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _get_or_404(db, user, expense_id)


@router.put("/{expense_id}", response_model=ExpenseSchema, summary="Update an expense")
def update_expense(
    expense_id: int,
    payload: ExpenseUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    expense = _get_or_404(db, user, expense_id)
    data = {
        k: v for k, v in payload.model_dump(exclude_unset=True).items()
        if not (k in _REQUIRED and v is None)
    }

    values = _column_values(data)
    schedule_changed = any(
        field in values and values[field] != getattr(expense, field) for field in _SCHEDULE_FIELDS
    )
    start = values.get("incurred_date", expense.incurred_date)
    end = values.get("end_date", expense.end_date)
    if start and end and end < start:
        raise HTTPException(status_code=422, detail="end_date must not be before incurred_date")
    old_amount = expense.amount_cents

    for field, val in values.items():
        setattr(expense, field, val)
    db.commit()
    db.refresh(expense)

    sync_entries(
        db, "expense", expense.id,
        schedule_changed=schedule_changed,
        amount_changed=expense.amount_cents != old_amount,
    )
    db.refresh(expense)
    return expense


@router.delete("/{expense_id}", status_code=204, summary="Delete an expense and its entries")
def delete_expense(expense_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    expense = _get_or_404(db, user, expense_id)
    db.delete(expense)
    db.commit()
