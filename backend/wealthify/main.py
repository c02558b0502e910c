import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from .database import init_db
from .routers import (
    analytics,
    auth,
    balance,
    contributions,
    dashboard,
    entries,
    expense_entries,
    expenses,
    goals,
    income,
    income_entries,
    one_time_expense,
    one_time_income,
    purchase_plans,
    snapshots,
)
from .schemas import HealthResponse
from .security import HTTPS_ONLY, SECRET_KEY, SESSION_MAX_AGE
from .services.media import MEDIA_DIR

logger = logging.getLogger(__name__)

VERSION = "0.1.0"

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("WEALTHIFY_CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",")
    if o.strip()
]


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # ── Startup ───────────────────────────────────────────────────────────────
    MEDIA_DIR.mkdir(parents=True, exist_ok=True)
    init_db()
    logger.info("Wealthify API %s ready", VERSION)
    yield
    # ── Shutdown (nothing needed) ─────────────────────────────────────────────


app = FastAPI(
    title="Wealthify",
    description="Personal finance tracking: income, expenses, goals, balance and analytics.",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(
    SessionMiddleware,
    secret_key=SECRET_KEY,
    session_cookie="wealthify_session",
    max_age=SESSION_MAX_AGE,
    same_site="lax",
    https_only=HTTPS_ONLY,
)

app.include_router(auth.router)
app.include_router(income.router)
app.include_router(expenses.router)
app.include_router(income_entries.router)
app.include_router(expense_entries.router)
app.include_router(entries.router)
app.include_router(one_time_income.router)
app.include_router(one_time_expense.router)
app.include_router(goals.router)
app.include_router(contributions.router)
app.include_router(balance.router)
app.include_router(snapshots.router)
app.include_router(purchase_plans.router)
app.include_router(dashboard.router)
app.include_router(analytics.router)

# The directory is created in lifespan.
app.mount("/media", StaticFiles(directory=MEDIA_DIR, check_dir=False), name="media")


@app.get("/health", response_model=HealthResponse, tags=["meta"])
def health():
    return {"status": "ok", "version": VERSION}
