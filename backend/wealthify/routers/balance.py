from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import User
from ..schemas import BalanceEntrySchema, BalanceResponse, BalanceUpdate
from ..security import get_current_user
from ..services.balance import apply_balance_change, recent_entries
from ..services.money import to_cents

router = APIRouter(prefix="/balance", tags=["balance"])


def _response(db: Session, user: User) -> BalanceResponse:
    return BalanceResponse(
        current_balance_cents=user.current_balance_cents,
        starting_balance_cents=user.starting_balance_cents,
        balance_updated_at=user.balance_updated_at,
        entries=[BalanceEntrySchema.model_validate(e) for e in recent_entries(db, user, limit=10)],
    )


@router.get("", response_model=BalanceResponse, summary="Current balance and the last 10 ledger rows")
def get_balance(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _response(db, user)


@router.post("", response_model=BalanceResponse, summary="Set the current balance")
def set_balance(
    payload: BalanceUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    apply_balance_change(db, user, to_cents(payload.balance), "MANUAL_UPDATE", payload.notes)
    db.commit()
    db.refresh(user)
    return _response(db, user)
