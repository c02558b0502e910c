from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import User
from ..schemas import GenerateEntriesRequest, GenerateEntriesResponse, UpcomingEntriesResponse
from ..security import get_current_user
from ..services.entry_generation import generate_missing_entries, generate_upcoming_month_entries
from ..services.money import add_months, month_key

router = APIRouter(prefix="/entries", tags=["entries"])


@router.post(
    "/generate",
    response_model=GenerateEntriesResponse,
    summary="Fill missing monthly entries for all active income streams and/or expenses",
)
def generate(
    payload: GenerateEntriesRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return generate_missing_entries(db, user, kind=payload.type)


@router.post(
    "/upcoming",
    response_model=UpcomingEntriesResponse,
    summary="Create next month's entries for active recurring definitions",
)
def upcoming(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    today = date.today()
    created = generate_upcoming_month_entries(db, user, today=today)
    return {"month": month_key(add_months(today, 1)), "created": created}
