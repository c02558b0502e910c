from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import User
from ..schemas import SnapshotSchema
from ..security import get_current_user
from ..services.snapshots import build_snapshot, list_snapshots

router = APIRouter(prefix="/snapshots", tags=["snapshots"])


@router.get("", response_model=list[SnapshotSchema], summary="Monthly snapshots, newest first")
def get_snapshots(
    months: int = Query(6, ge=1, le=120, description="How many months back to include"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return list_snapshots(db, user, months=months)


@router.post("", response_model=SnapshotSchema, status_code=201, summary="Create or refresh this month's snapshot")
def create_snapshot(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return build_snapshot(db, user)
