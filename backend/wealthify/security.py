import logging
import os

import bcrypt
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from .database import get_db
from .models import User

logger = logging.getLogger(__name__)

_DEV_SECRET = "wealthify-dev-secret-change-me"

# Signs the session cookie.  Must be set in any shared deployment.
SECRET_KEY = os.getenv("WEALTHIFY_SECRET_KEY") or _DEV_SECRET
SESSION_MAX_AGE = int(os.getenv("WEALTHIFY_SESSION_MAX_AGE", str(14 * 24 * 60 * 60)))
HTTPS_ONLY = os.getenv("WEALTHIFY_HTTPS_ONLY") == "1"

if SECRET_KEY == _DEV_SECRET:
    logger.warning("WEALTHIFY_SECRET_KEY is not set; using the development session key.")


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def sign_in(request: Request, user: User) -> None:
    request.session.clear()
    request.session["user_id"] = user.id


def sign_out(request: Request) -> None:
    request.session.clear()


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """
    Resolve the signed-in user from the session cookie.

    A session pointing at a user that no longer exists is cleared and treated
    as signed out.
    """
    user_id = request.session.get("user_id")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not signed in.",
        )
    user = db.get(User, user_id)
    if user is None:
        request.session.clear()
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session user no longer exists.",
        )
    return user


CurrentUser = Depends(get_current_user)
