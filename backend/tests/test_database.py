from datetime import date

from fastapi.testclient import TestClient
from sqlalchemy import inspect, text

from wealthify import main
from wealthify.database import _run_alembic_upgrade, init_db, make_engine
from wealthify.models import GoalContribution, IncomeEntry, IncomeStream, User
from wealthify.security import verify_password
from wealthify.services.seeder import DEMO_EMAIL, DEMO_PASSWORD, seed_demo_user

_TABLES = {
    "users", "income_streams", "income_entries", "expenses", "expense_entries",
    "one_time_incomes", "one_time_expenses", "goals", "goal_contributions",
    "balance_entries", "monthly_snapshots", "purchase_plans",
}


def _version(engine) -> str:
    with engine.connect() as conn:
        return conn.execute(text("SELECT version_num FROM alembic_version")).scalar()


class TestInitDb:
    def test_new_database_created_and_stamped(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'fresh.db'}"
        init_db(url)

        eng = make_engine(url)
        assert _TABLES <= set(inspect(eng).get_table_names())
        assert _version(eng) == "0001"

        # Second start on the same file is a no-op upgrade.
        init_db(url)
        assert _version(eng) == "0001"
        eng.dispose()

    def test_migrations_build_the_schema(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'migrated.db'}"
        _run_alembic_upgrade(url)

        eng = make_engine(url)
        assert _TABLES <= set(inspect(eng).get_table_names())
        uniques = inspect(eng).get_unique_constraints("income_entries")
        assert [u["column_names"] for u in uniques] == [["income_stream_id", "month"]]
        eng.dispose()


class TestSeeder:
    def test_seeds_demo_user(self, db):
        user = seed_demo_user(db, today=date(2025, 6, 15))

        assert user.email == DEMO_EMAIL
        assert verify_password(DEMO_PASSWORD, user.password_hash)
        assert db.query(IncomeStream).filter(IncomeStream.user_id == user.id).count() == 3
        # 4 + 4 + 3 months of income
        assert db.query(IncomeEntry).count() == 11
        assert db.query(GoalContribution).count() == 3
        # 25,000 opening balance less 10,500 contributed to goals
        assert user.current_balance_cents == 1450000
        assert user.starting_balance_cents == 2500000

    def test_idempotent(self, db):
        seed_demo_user(db, today=date(2025, 6, 15))
        assert seed_demo_user(db, today=date(2025, 6, 15)) is None
        assert db.query(User).filter(User.email == DEMO_EMAIL).count() == 1


class TestStartup:
    def test_lifespan_creates_media_dir(self, tmp_path, monkeypatch):
        media = tmp_path / "media"
        started = []
        monkeypatch.setattr(main, "MEDIA_DIR", media)
        monkeypatch.setattr(main, "init_db", lambda: started.append(True))

        assert not media.exists()
        with TestClient(main.app):
            assert media.is_dir()
        assert started == [True]
