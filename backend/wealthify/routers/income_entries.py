from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, joinedload

from ..database import get_db
from ..models import IncomeEntry, IncomeStream, User
from ..schemas import EntryUpdate, IncomeEntryCreate, IncomeEntrySchema
from ..security import get_current_user
from ..services.money import month_key, to_cents

router = APIRouter(prefix="/income-entries", tags=["entries"])


def _to_schema(entry: IncomeEntry) -> IncomeEntrySchema:
    schema = IncomeEntrySchema.model_validate(entry)
    schema.income_stream_name = entry.income_stream.name if entry.income_stream else None
    return schema


def _owned(db: Session, user: User):
    return (
        db.query(IncomeEntry)
        .join(IncomeStream, IncomeEntry.income_stream_id == IncomeStream.id)
        .filter(IncomeStream.user_id == user.id)
        .options(joinedload(IncomeEntry.income_stream))
    )


def _get_or_404(db: Session, user: User, entry_id: int) -> IncomeEntry:
    entry = _owned(db, user).filter(IncomeEntry.id == entry_id).first()
    if not entry:
        raise HTTPException(status_code=404, detail=f"Income entry {entry_id} not found")
    return entry


@router.get("", response_model=list[IncomeEntrySchema], summary="List income entries")
def list_income_entries(
    year: Optional[int] = Query(None, ge=1900, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    income_stream_id: Optional[int] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    q = _owned(db, user)
    if year is not None and month is not None:
        q = q.filter(IncomeEntry.month == f"{year:04d}-{month:02d}")
    elif year is not None:
        q = q.filter(IncomeEntry.month.like(f"{year:04d}-%"))
    elif month is not None:
        raise HTTPException(status_code=422, detail="month filter requires year")
    if income_stream_id is not None:
        q = q.filter(IncomeEntry.income_stream_id == income_stream_id)
    return [_to_schema(e) for e in q.order_by(IncomeEntry.month.desc(), IncomeEntry.id.desc()).all()]


@router.post("", response_model=IncomeEntrySchema, status_code=201, summary="Record an income entry")
def create_income_entry(
    payload: IncomeEntryCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    stream = (
        db.query(IncomeStream)
        .filter(IncomeStream.id == payload.income_stream_id, IncomeStream.user_id == user.id)
        .first()
    )
    if not stream:
        raise HTTPException(status_code=404, detail=f"Income stream {payload.income_stream_id} not found")

    key = month_key(payload.month)
    exists = (
        db.query(IncomeEntry)
        .filter(IncomeEntry.income_stream_id == stream.id, IncomeEntry.month == key)
        .first()
    )
    if exists:
        raise HTTPException(status_code=409, detail=f"An entry for {stream.name} in {key} already exists")

    entry = IncomeEntry(
        income_stream_id=stream.id,
        month=key,
        amount_cents=to_cents(payload.amount),
        notes=payload.notes,
        is_generated=False,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return _to_schema(entry)


@router.get("/{entry_id}", response_model=IncomeEntrySchema, summary="Get an income entry")
def get_income_entry(entry_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _to_schema(_get_or_404(db, user, entry_id))


@router.patch("/{entry_id}", response_model=IncomeEntrySchema, summary="Edit an income entry's amount or notes")
def update_income_entry(
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


@router.delete("/{entry_id}", status_code=204, summary="Delete an income entry")
def delete_income_entry(entry_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    entry = _get_or_404(db, user, entry_id)
    db.delete(entry)
    db.commit()
