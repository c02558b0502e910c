from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import Expense, Goal, IncomeStream, User
from ..schemas import GoalAnalysisSchema, GoalCreate, GoalSchema, GoalUpdate
from ..security import get_current_user
from ..services import calculations as calc
from ..services.media import IMAGE_EXTENSIONS, MAX_IMAGE_BYTES, delete_media, save_goal_image
from ..services.money import to_cents

router = APIRouter(prefix="/goals", tags=["goals"])


def _get_or_404(db: Session, user: User, goal_id: int) -> Goal:
    goal = db.query(Goal).filter(Goal.id == goal_id, Goal.user_id == user.id).first()
    if not goal:
        raise HTTPException(status_code=404, detail=f"Goal {goal_id} not found")
    return goal


@router.get("", response_model=list[GoalSchema], summary="List goals, most important first")
def list_goals(
    is_completed: Optional[bool] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    q = db.query(Goal).filter(Goal.user_id == user.id)
    if is_completed is not None:
        q = q.filter(Goal.is_completed.is_(is_completed))
    return q.order_by(Goal.priority.asc(), Goal.target_date.asc(), Goal.id.asc()).all()


@router.post("", response_model=GoalSchema, status_code=201, summary="Create a goal")
def create_goal(
    payload: GoalCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    target = to_cents(payload.target_amount)
    current = to_cents(payload.current_amount)
    goal = Goal(
        user_id=user.id,
        name=payload.name,
        description=payload.description,
        target_amount_cents=target,
        current_amount_cents=current,
        target_date=payload.target_date.isoformat(),
        priority=payload.priority,
        category=payload.category,
        is_completed=current >= target,
    )
    db.add(goal)
    db.commit()
    db.refresh(goal)
    return goal


@router.get("/{goal_id}", response_model=GoalSchema, summary="Get a goal")
def get_goal(goal_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _get_or_404(db, user, goal_id)


@router.put("/{goal_id}", response_model=GoalSchema, summary="Update a goal")
def update_goal(
    goal_id: int,
    payload: GoalUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    goal = _get_or_404(db, user, goal_id)
    data = payload.model_dump(exclude_unset=True)

    if data.get("name") is not None:
        goal.name = data["name"]
    if "description" in data:
        goal.description = data["description"]
    if data.get("target_amount") is not None:
        goal.target_amount_cents = to_cents(data["target_amount"])
    if data.get("target_date") is not None:
        goal.target_date = data["target_date"].isoformat()
    if data.get("priority") is not None:
        goal.priority = data["priority"]
    if data.get("category") is not None:
        goal.category = data["category"]
    # Completion always follows the amounts.
    goal.is_completed = goal.current_amount_cents >= goal.target_amount_cents

    db.commit()
    db.refresh(goal)
    return goal


@router.delete("/{goal_id}", status_code=204, summary="Delete a goal and its contributions")
def delete_goal(goal_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    goal = _get_or_404(db, user, goal_id)
    image_path = goal.image_path
    db.delete(goal)
    db.commit()
    delete_media(image_path)


@router.get("/{goal_id}/analysis", response_model=GoalAnalysisSchema, summary="Pace and affordability of one goal")
def analyze_goal(goal_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    goal = _get_or_404(db, user, goal_id)
    streams = db.query(IncomeStream).filter(IncomeStream.user_id == user.id).all()
    expenses = db.query(Expense).filter(Expense.user_id == user.id).all()
    return calc.analyze_goal(
        goal,
        calc.monthly_income_cents(streams),
        calc.monthly_expenses_cents(expenses),
        date.today(),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Image
# ─────────────────────────────────────────────────────────────────────────────


@router.post("/{goal_id}/image", response_model=GoalSchema, summary="Upload or replace a goal image")
async def upload_goal_image(
    goal_id: int,
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    goal = _get_or_404(db, user, goal_id)

    content_type = (file.content_type or "").split(";", 1)[0].strip().lower()
    if content_type not in IMAGE_EXTENSIONS:
        raise HTTPException(
            status_code=415,
            detail="Only JPEG, PNG, GIF or WebP images are allowed.",
        )
    content = await file.read()
    if not content:
        raise HTTPException(status_code=422, detail="Uploaded file is empty.")
    if len(content) > MAX_IMAGE_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"Image too large (>{MAX_IMAGE_BYTES // (1024*1024)} MB).",
        )

    old_path = goal.image_path
    goal.image_path = save_goal_image(user.id, content, content_type)
    db.commit()
    db.refresh(goal)
    delete_media(old_path)
    return goal


@router.delete("/{goal_id}/image", response_model=GoalSchema, summary="Remove a goal image")
def delete_goal_image(goal_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    goal = _get_or_404(db, user, goal_id)
    old_path = goal.image_path
    goal.image_path = None
    db.commit()
    db.refresh(goal)
    delete_media(old_path)
    return goal
