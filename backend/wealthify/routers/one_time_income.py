from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import OneTimeIncome, User
from ..schemas import OneTimeCreate, OneTimeSchema, OneTimeUpdate
from ..security import get_current_user
from ..services.money import month_bounds, to_cents

router = APIRouter(prefix="/one-time-income", tags=["one-time"])


def _get_or_404(db: Session, user: User, item_id: int) -> OneTimeIncome:
    item = (
        db.query(OneTimeIncome)
        .filter(OneTimeIncome.id == item_id, OneTimeIncome.user_id == user.id)
        .first()
    )
    if not item:
        raise HTTPException(status_code=404, detail=f"One-time income {item_id} not found")
    return item


@router.get("", response_model=list[OneTimeSchema], summary="List one-time income")
def list_one_time_income(
    year: Optional[int] = Query(None, ge=1900, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    q = db.query(OneTimeIncome).filter(OneTimeIncome.user_id == user.id)
    if year is not None and month is not None:
        first, last = month_bounds(year, month)
        q = q.filter(OneTimeIncome.date >= first, OneTimeIncome.date <= last)
    elif year is not None:
        q = q.filter(OneTimeIncome.date.like(f"{year:04d}-%"))
    return q.order_by(OneTimeIncome.date.desc(), OneTimeIncome.id.desc()).all()


@router.post("", response_model=OneTimeSchema, status_code=201, summary="Record one-time income")
def create_one_time_income(
    payload: OneTimeCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    item = OneTimeIncome(
        user_id=user.id,
        name=payload.name,
        amount_cents=to_cents(payload.amount),
        date=payload.date.isoformat(),
        category=payload.category,
        notes=payload.notes,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@router.get("/{item_id}", response_model=OneTimeSchema, summary="Get one-time income")
def get_one_time_income(item_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _get_or_404(db, user, item_id)


@router.put("/{item_id}", response_model=OneTimeSchema, summary="Update one-time income")
def update_one_time_income(
    item_id: int,
    payload: OneTimeUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    item = _get_or_404(db, user, item_id)
    data = payload.model_dump(exclude_unset=True)
    if data.get("name") is not None:
        item.name = data["name"]
    if data.get("amount") is not None:
        item.amount_cents = to_cents(data["amount"])
    if data.get("date") is not None:
        item.date = data["date"].isoformat()
    if data.get("category") is not None:
        item.category = data["category"]
    if "notes" in data:
        item.notes = data["notes"]
    db.commit()
    db.refresh(item)
    return item


@router.delete("/{item_id}", status_code=204, summary="Delete one-time income")
def delete_one_time_income(item_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    item = _get_or_404(db, user, item_id)
    db.delete(item)
    db.commit()
