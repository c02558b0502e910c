import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import User
from ..schemas import PasswordChange, SignInRequest, SignUpRequest, UserSchema, UserUpdate
from ..security import get_current_user, hash_password, sign_in, sign_out, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=UserSchema, status_code=201, summary="Create an account and sign in")
def signup(payload: SignUpRequest, request: Request, db: Session = Depends(get_db)):
    if db.query(User).filter(User.email == payload.email).first():
        raise HTTPException(status_code=409, detail="An account with this email already exists.")
    user = User(email=payload.email, name=payload.name, password_hash=hash_password(payload.password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="An account with this email already exists.")
    db.refresh(user)
    sign_in(request, user)
    logger.info("New account %d", user.id)
    return user


@router.post("/signin", response_model=UserSchema, summary="Sign in with email and password")
def signin(payload: SignInRequest, request: Request, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == payload.email).first()
    if user is None or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password.")
    sign_in(request, user)
    return user


@router.post("/signout", status_code=204, summary="End the current session")
def signout(request: Request):
    sign_out(request)


@router.get("/me", response_model=UserSchema, summary="Current user")
def me(user: User = Depends(get_current_user)):
    return user


@router.put("/me", response_model=UserSchema, summary="Update name or currency")
def update_me(
    payload: UserUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    for field, val in payload.model_dump(exclude_unset=True).items():
        if val is not None:
            setattr(user, field, val)
    db.commit()
    db.refresh(user)
    return user


@router.put("/password", status_code=204, summary="Change password")
def change_password(
    payload: PasswordChange,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not verify_password(payload.current_password, user.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect.")
    user.password_hash = hash_password(payload.new_password)
    db.commit()
