from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import IncomeStream, User
from ..schemas import IncomeStreamCreate, IncomeStreamSchema, IncomeStreamUpdate
from ..security import get_current_user
from ..services.entry_generation import sync_entries
from ..services.money import to_cents

router = APIRouter(prefix="/income", tags=["income"])

_SCHEDULE_FIELDS = {"earned_date", "end_date", "frequency"}


def _get_or_404(db: Session, user: User, stream_id: int) -> IncomeStream:
    stream = (
        db.query(IncomeStream)
        .filter(IncomeStream.id == stream_id, IncomeStream.user_id == user.id)
        .first()
    )
    if not stream:
        raise HTTPException(status_code=404, detail=f"Income stream {stream_id} not found")
    return stream


def _column_values(data: dict) -> dict:
    """Request fields → column values (amounts to cents, dates to ISO)."""
    values = {}
    for field, val in data.items():
        if field == "expected_monthly":
            values["expected_monthly_cents"] = to_cents(val)
        elif field == "actual_monthly":
            values["actual_monthly_cents"] = to_cents(val) if val is not None else None
        elif field in ("earned_date", "end_date"):
            values[field] = val.isoformat() if val else None
        else:
            values[field] = val
    return values


@router.get("", response_model=list[IncomeStreamSchema], summary="List income streams")
def list_income(
    is_active: Optional[bool] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    q = db.query(IncomeStream).filter(IncomeStream.user_id == user.id)
    if is_active is not None:
        q = q.filter(IncomeStream.is_active.is_(is_active))
    return q.order_by(IncomeStream.created_at.desc(), IncomeStream.id.desc()).all()


@router.post("", response_model=IncomeStreamSchema, status_code=201, summary="Create an income stream")
def create_income(
    payload: IncomeStreamCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    stream = IncomeStream(user_id=user.id, **_column_values(payload.model_dump()))
    db.add(stream)
    db.commit()
    db.refresh(stream)
    sync_entries(db, "income", stream.id)
    db.refresh(stream)
    return stream


@router.get("/{stream_id}", response_model=IncomeStreamSchema, summary="Get an income stream")
def get_income(stream_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _get_or_404(db, user, stream_id)


@router.put("/{stream_id}", response_model=IncomeStreamSchema, summary="Update an income stream")
def update_income(
    stream_id: int,
    payload: IncomeStreamUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    stream = _get_or_404(db, user, stream_id)
    data = payload.model_dump(exclude_unset=True)
    # Required columns cannot be cleared.
    for field in ("name", "type", "expected_monthly", "frequency", "is_active"):
        if field in data and data[field] is None:
            data.pop(field)

    values = _column_values(data)
    schedule_changed = any(
        field in values and values[field] != getattr(stream, field) for field in _SCHEDULE_FIELDS
    )
    start = values.get("earned_date", stream.earned_date)
    end = values.get("end_date", stream.end_date)
    if start and end and end < start:
        raise HTTPException(status_code=422, detail="end_date must not be before earned_date")
    old_amount = stream.effective_monthly_cents

    for field, val in values.items():
        setattr(stream, field, val)
    db.commit()
    db.refresh(stream)

    sync_entries(
        db, "income", stream.id,
        schedule_changed=schedule_changed,
        amount_changed=stream.effective_monthly_cents != old_amount,
    )
    db.refresh(stream)
    return stream


@router.delete("/{stream_id}", status_code=204, summary="Delete an income stream and its entries")
def delete_income(stream_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    stream = _get_or_404(db, user, stream_id)
    db.delete(stream)
    db.commit()
