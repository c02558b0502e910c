import logging
import os
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, Engine, inspect
from sqlalchemy.orm import declarative_base, sessionmaker, Session

logger = logging.getLogger(__name__)

Base = declarative_base()

# Alembic script directory, used when running migrations programmatically
BACKEND_DIR = Path(__file__).parent.parent          # …/backend/
ALEMBIC_DIR = BACKEND_DIR / "alembic"

DATABASE_URL = os.getenv(
    "WEALTHIFY_DATABASE_URL",
    f"sqlite:///{BACKEND_DIR.parent / 'wealthify.db'}",
)


def _connect_args(url: str) -> dict:
    # SQLite connections are shared across FastAPI's threadpool workers.
    return {"check_same_thread": False} if url.startswith("sqlite") else {}


def make_engine(url: str) -> Engine:
    return create_engine(url, connect_args=_connect_args(url))


engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def _run_alembic_upgrade(db_url: str, *, is_new_db: bool = False) -> None:
    """Run Alembic migrations to head for the given database URL.

    Strategy:
    - Brand-new DBs (``is_new_db=True``): ``create_all`` already built the full
      current schema in this process.  Stamp to head so future migrations know
      the baseline; no migrations actually need to run.
    - Existing DBs: ``upgrade head`` applies whatever is pending.
    """
    from alembic.config import Config
    from alembic import command

    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", str(ALEMBIC_DIR))
    alembic_cfg.set_main_option("sqlalchemy.url", db_url)

    if is_new_db:
        command.stamp(alembic_cfg, "head")
        return

    command.upgrade(alembic_cfg, "head")


def init_db(db_url: str = DATABASE_URL) -> None:
    """Create or migrate the schema, then seed the demo user when asked to."""
    from . import models  # noqa: F401  (registers tables on Base.metadata)
    from .services.seeder import seed_demo_user

    target = engine if db_url == DATABASE_URL else make_engine(db_url)

    # A database with no tables at all is treated as brand new.
    is_new_db = not inspect(target).get_table_names()
    if is_new_db:
        Base.metadata.create_all(bind=target)
        logger.info("Created schema for new database %s", target.url.render_as_string(hide_password=True))

    _run_alembic_upgrade(db_url, is_new_db=is_new_db)

    if os.getenv("WEALTHIFY_SEED_DEMO") == "1":
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=target)
        db = _SessionLocal()
        try:
            seed_demo_user(db)
        finally:
            db.close()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
