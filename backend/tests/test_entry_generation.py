from datetime import date, datetime

import pytest
from sqlalchemy.exc import SQLAlchemyError

from wealthify.models import Expense, ExpenseEntry, IncomeEntry, IncomeStream
from wealthify.services import entry_generation
from wealthify.services.entry_generation import (
    delete_entries,
    generate_entries,
    generate_missing_entries,
    generate_upcoming_month_entries,
    regenerate_entries,
    sync_entries,
    update_future_entries,
)

TODAY = date(2025, 6, 15)


def _stream(db, user, **kw) -> IncomeStream:
    fields = dict(
        user_id=user.id,
        name="Salary",
        type="SALARY",
        expected_monthly_cents=500000,
        frequency="MONTHLY",
        earned_date="2025-03-10",
    )
    fields.update(kw)
    stream = IncomeStream(**fields)
    db.add(stream)
    db.commit()
    return stream


def _expense(db, user, **kw) -> Expense:
    fields = dict(
        user_id=user.id,
        name="Rent",
        category="HOUSING",
        type="FIXED",
        amount_cents=150000,
        frequency="MONTHLY",
        incurred_date="2025-04-01",
    )
    fields.update(kw)
    expense = Expense(**fields)
    db.add(expense)
    db.commit()
    return expense


def _income_months(db, stream) -> dict[str, int]:
    rows = db.query(IncomeEntry).filter(IncomeEntry.income_stream_id == stream.id).all()
    return {r.month: r.amount_cents for r in rows}


def _expense_months(db, expense) -> dict[str, int]:
    rows = db.query(ExpenseEntry).filter(ExpenseEntry.expense_id == expense.id).all()
    return {r.month: r.amount_cents for r in rows}


class TestGenerateEntries:
    def test_one_entry_per_month_through_current(self, db, user):
        stream = _stream(db, user)
        result = generate_entries(db, "income", stream.id, today=TODAY)

        assert result["generated"] == 4
        assert result["existing"] == 0
        assert result["skipped"] == 0
        assert _income_months(db, stream) == {
            "2025-03": 500000, "2025-04": 500000, "2025-05": 500000, "2025-06": 500000,
        }

    def test_generated_entries_are_flagged_and_noted(self, db, user):
        stream = _stream(db, user)
        generate_entries(db, "income", stream.id, today=TODAY)
        entry = db.query(IncomeEntry).first()
        assert entry.is_generated is True
        assert entry.notes == "Auto-generated from Salary"

    def test_idempotent(self, db, user):
        stream = _stream(db, user)
        generate_entries(db, "income", stream.id, today=TODAY)
        again = generate_entries(db, "income", stream.id, today=TODAY)

        assert again["generated"] == 0
        assert again["existing"] == 4
        assert len(_income_months(db, stream)) == 4

    def test_fills_gaps_around_manual_entry(self, db, user):
        stream = _stream(db, user)
        db.add(IncomeEntry(income_stream_id=stream.id, month="2025-04", amount_cents=123, is_generated=False))
        db.commit()

        result = generate_entries(db, "income", stream.id, today=TODAY)

        assert result["generated"] == 3
        assert result["existing"] == 1
        assert _income_months(db, stream)["2025-04"] == 123

    def test_actual_amount_preferred_over_expected(self, db, user):
        stream = _stream(db, user, actual_monthly_cents=550000)
        generate_entries(db, "income", stream.id, today=TODAY)
        assert set(_income_months(db, stream).values()) == {550000}

    def test_weekly_converted_to_monthly(self, db, user):
        stream = _stream(db, user, expected_monthly_cents=100000, frequency="WEEKLY", earned_date="2025-06-01")
        generate_entries(db, "income", stream.id, today=TODAY)
        assert _income_months(db, stream) == {"2025-06": 433000}

    def test_future_end_date_capped_at_current_month(self, db, user):
        stream = _stream(db, user, end_date="2026-12-31")
        result = generate_entries(db, "income", stream.id, today=TODAY)
        assert result["generated"] == 4
        assert max(_income_months(db, stream)) == "2025-06"

    def test_past_end_date_stops_generation(self, db, user):
        stream = _stream(db, user, end_date="2025-04-20")
        generate_entries(db, "income", stream.id, today=TODAY)
        assert sorted(_income_months(db, stream)) == ["2025-03", "2025-04"]

    def test_future_start_generates_nothing(self, db, user):
        stream = _stream(db, user, earned_date="2025-09-01")
        result = generate_entries(db, "income", stream.id, today=TODAY)
        assert result["generated"] == 0
        assert _income_months(db, stream) == {}

    def test_sync_entries_failure_keeps_definition(self, db, user, monkeypatch):
        stream = _stream(db, user)

        def _fail(db, kind, definition_id, today=None):
            db.add(IncomeEntry(income_stream_id=definition_id, month="2025-03", amount_cents=1))
            db.flush()
            raise SQLAlchemyError("disk I/O error")

        monkeypatch.setattr(entry_generation, "generate_entries", _fail)

        assert sync_entries(db, "income", stream.id, today=TODAY) is None
        assert db.get(IncomeStream, stream.id) is not None
        assert _income_months(db, stream) == {}

    def test_sync_entries_failure_keeps_existing_entries(self, db, user, monkeypatch):
        stream = _stream(db, user)
        generate_entries(db, "income", stream.id, today=TODAY)

        def _fail(db, kind, definition_id, today=None):
            raise SQLAlchemyError("disk I/O error")

        monkeypatch.setattr(entry_generation, "generate_entries", _fail)
        sync_entries(db, "income", stream.id, today=TODAY)

        # The staged delete was rolled back with the failed regeneration.
        assert sorted(_income_months(db, stream)) == ["2025-03", "2025-04", "2025-05", "2025-06"]

    def test_one_time_booked_in_start_month_only(self, db, user):
        stream = _stream(db, user, name="Bonus", frequency="ONE_TIME", expected_monthly_cents=900000)
        result = generate_entries(db, "income", stream.id, today=TODAY)

        assert result["generated"] == 1
        assert result["skipped"] == 3
        assert _income_months(db, stream) == {"2025-03": 900000}

    def test_start_falls_back_to_created_at(self, db, user):
        stream = _stream(db, user, earned_date=None, created_at=datetime(2025, 5, 20, 9, 30))
        generate_entries(db, "income", stream.id, today=TODAY)
        assert sorted(_income_months(db, stream)) == ["2025-05", "2025-06"]

    def test_expense_kind(self, db, user):
        expense = _expense(db, user, amount_cents=120000, frequency="YEARLY")
        result = generate_entries(db, "expense", expense.id, today=TODAY)
        assert result["generated"] == 3
        assert set(_expense_months(db, expense).values()) == {10000}

    def test_unknown_definition_raises_lookup_error(self, db, user):
        with pytest.raises(LookupError):
            generate_entries(db, "income", 9999, today=TODAY)

    def test_unknown_kind_raises_value_error(self, db, user):
        with pytest.raises(ValueError):
            generate_entries(db, "transfer", 1, today=TODAY)


class TestUpdateAndRegenerate:
    def test_update_future_entries_keeps_history(self, db, user):
        stream = _stream(db, user)
        generate_entries(db, "income", stream.id, today=TODAY)

        updated = update_future_entries(db, "income", stream.id, 600000, today=TODAY)

        assert updated == 1
        months = _income_months(db, stream)
        assert months["2025-06"] == 600000
        assert months["2025-05"] == 500000
        assert months["2025-03"] == 500000

    def test_update_future_entries_applies_frequency(self, db, user):
        expense = _expense(db, user, frequency="QUARTERLY", amount_cents=300000)
        generate_entries(db, "expense", expense.id, today=TODAY)
        update_future_entries(db, "expense", expense.id, 600000, today=TODAY)
        assert _expense_months(db, expense)["2025-06"] == 200000

    def test_delete_entries(self, db, user):
        stream = _stream(db, user)
        generate_entries(db, "income", stream.id, today=TODAY)
        assert delete_entries(db, "income", stream.id) == 4
        assert _income_months(db, stream) == {}

    def test_regenerate_follows_new_schedule(self, db, user):
        stream = _stream(db, user)
        generate_entries(db, "income", stream.id, today=TODAY)

        stream.earned_date = "2025-05-01"
        db.commit()
        result = regenerate_entries(db, "income", stream.id, today=TODAY)

        assert result["deleted"] == 4
        assert result["generated"] == 2
        assert sorted(_income_months(db, stream)) == ["2025-05", "2025-06"]

    def test_sync_entries_amount_only_reprices(self, db, user):
        stream = _stream(db, user)
        generate_entries(db, "income", stream.id, today=TODAY)
        stream.expected_monthly_cents = 700000
        db.commit()

        sync_entries(db, "income", stream.id, schedule_changed=False, amount_changed=True, today=TODAY)

        months = _income_months(db, stream)
        assert months["2025-06"] == 700000
        assert months["2025-04"] == 500000

    def test_sync_entries_nothing_changed_is_noop(self, db, user):
        stream = _stream(db, user)
        assert sync_entries(db, "income", stream.id, schedule_changed=False, today=TODAY) is None
        assert _income_months(db, stream) == {}


class TestUserWide:
    def test_generate_missing_skips_inactive(self, db, user):
        _stream(db, user)
        _stream(db, user, name="Old gig", is_active=False)
        _expense(db, user)

        result = generate_missing_entries(db, user, "all", today=TODAY)

        assert result["income_entries"] == 4
        assert result["expense_entries"] == 3
        assert result["total"] == 7

    def test_generate_missing_single_kind(self, db, user):
        _stream(db, user)
        _expense(db, user)
        result = generate_missing_entries(db, user, "expense", today=TODAY)
        assert result["income_entries"] == 0
        assert result["expense_entries"] == 3

    def test_generate_missing_ignores_other_users(self, db, user):
        from wealthify.models import User

        other = User(email="other@example.com", name="Other", password_hash="x")
        db.add(other)
        db.commit()
        _stream(db, other)

        assert generate_missing_entries(db, user, today=TODAY)["total"] == 0

    def test_upcoming_month(self, db, user):
        stream = _stream(db, user)
        _stream(db, user, name="Bonus", frequency="ONE_TIME")
        _expense(db, user, end_date="2025-06-30")
        _expense(db, user, name="Gym", amount_cents=5000, incurred_date="2025-09-01")

        created = generate_upcoming_month_entries(db, user, today=TODAY)

        assert created == 1
        entry = db.query(IncomeEntry).filter(IncomeEntry.income_stream_id == stream.id).one()
        assert entry.month == "2025-07"
        assert entry.notes == "Auto-generated for July 2025"
        assert generate_upcoming_month_entries(db, user, today=TODAY) == 0
