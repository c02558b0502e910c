from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import PurchasePlan, User
from ..schemas import PurchasePlanCreate, PurchasePlanSchema, PurchasePlanUpdate
from ..security import get_current_user
from ..services.money import to_cents

router = APIRouter(prefix="/purchase-plans", tags=["purchase-plans"])


def _get_or_404(db: Session, user: User, plan_id: int) -> PurchasePlan:
    plan = (
        db.query(PurchasePlan)
        .filter(
            PurchasePlan.id == plan_id,
            PurchasePlan.user_id == user.id,
            PurchasePlan.is_active.is_(True),
        )
        .first()
    )
    if not plan:
        raise HTTPException(status_code=404, detail=f"Purchase plan {plan_id} not found")
    return plan


@router.get("", response_model=list[PurchasePlanSchema], summary="List active purchase plans")
def list_plans(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return (
        db.query(PurchasePlan)
        .filter(PurchasePlan.user_id == user.id, PurchasePlan.is_active.is_(True))
        .order_by(PurchasePlan.created_at.desc(), PurchasePlan.id.desc())
        .all()
    )


@router.post("", response_model=PurchasePlanSchema, status_code=201, summary="Create a purchase plan")
def create_plan(
    payload: PurchasePlanCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    plan = PurchasePlan(
        user_id=user.id,
        name=payload.name,
        purchase_type=payload.purchase_type,
        target_amount_cents=to_cents(payload.target_amount),
        current_saved_cents=to_cents(payload.current_saved),
        desired_timeline_months=payload.desired_timeline_months,
        down_payment_ratio=payload.down_payment_ratio,
        appreciation_rate=payload.appreciation_rate,
        notes=payload.notes,
    )
    db.add(plan)
    db.commit()
    db.refresh(plan)
    return plan


@router.put("", response_model=PurchasePlanSchema, summary="Update a purchase plan (id in body)")
def update_plan(
    payload: PurchasePlanUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    plan = _get_or_404(db, user, payload.id)
    for field, val in payload.model_dump(exclude_unset=True, exclude={"id"}).items():
        if field == "target_amount":
            if val is not None:
                plan.target_amount_cents = to_cents(val)
        elif field == "current_saved":
            if val is not None:
                plan.current_saved_cents = to_cents(val)
        elif val is not None or field in ("down_payment_ratio", "appreciation_rate", "notes"):
            setattr(plan, field, val)
    db.commit()
    db.refresh(plan)
    return plan


@router.delete("/{plan_id}", status_code=204, summary="Archive a purchase plan")
def delete_plan(plan_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    plan = _get_or_404(db, user, plan_id)
    plan.is_active = False
    db.commit()
