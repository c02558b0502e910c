from datetime import date, timedelta
from types import SimpleNamespace

import pytest

from wealthify.services.calculations import (
    UNBOUNDED_MONTHS,
    accumulated_balance,
    analyze_affordability,
    analyze_goal,
    assess_risk,
    average_goal_progress,
    balance_projections,
    burn_rate,
    burn_rate_scenarios,
    debt_to_income,
    emergency_runway,
    financial_runway,
    goal_allocations,
    goal_progress,
    goal_timeline,
    health_score,
    income_gap,
    lifestyle_affordability,
    lifestyle_metrics,
    monthly_change,
    monthly_expenses_cents,
    monthly_income_cents,
    months_until,
    required_monthly_savings,
    savings_rate,
)

TODAY = date(2025, 6, 15)


def _goal(id=1, target=100000, current=0, days=365, priority=1, name="Goal"):
    return SimpleNamespace(
        id=id,
        name=name,
        target_amount_cents=target,
        current_amount_cents=current,
        target_date=(TODAY + timedelta(days=days)).isoformat(),
        priority=priority,
    )


class TestMonthlyTotals:
    def test_income_skips_inactive_and_one_time(self):
        streams = [
            SimpleNamespace(effective_monthly_cents=500000, frequency="MONTHLY", is_active=True),
            SimpleNamespace(effective_monthly_cents=10000, frequency="WEEKLY", is_active=True),
            SimpleNamespace(effective_monthly_cents=900000, frequency="ONE_TIME", is_active=True),
            SimpleNamespace(effective_monthly_cents=300000, frequency="MONTHLY", is_active=False),
        ]
        assert monthly_income_cents(streams) == 543300

    def test_expenses(self):
        expenses = [
            SimpleNamespace(amount_cents=150000, frequency="MONTHLY", is_active=True),
            SimpleNamespace(amount_cents=120000, frequency="YEARLY", is_active=True),
        ]
        assert monthly_expenses_cents(expenses) == 160000


class TestRates:
    def test_burn_rate(self):
        assert burn_rate(60, 100) == 60
        assert burn_rate(150, 100) == 100

    def test_burn_rate_without_income(self):
        assert burn_rate(50, 0) == 100
        assert burn_rate(0, 0) == 0

    def test_savings_rate(self):
        assert savings_rate(100, 60) == 40
        assert savings_rate(100, 150) == 0
        assert savings_rate(0, 10) == 0

    def test_health_score_bands(self):
        assert health_score(40, 35, 50) == 90
        assert health_score(90, 5, 0) == 15
        assert health_score(60, 15, 100) == 75

    def test_health_score_goal_points_capped(self):
        assert health_score(10, 50, 250) == 100

    def test_monthly_change_signed(self):
        assert monthly_change(110, 100) == pytest.approx(10)
        assert monthly_change(90, 100) == pytest.approx(-10)
        assert monthly_change(50, 0) == 0

    def test_debt_to_income(self):
        assert debt_to_income(25, 100) == 25
        assert debt_to_income(25, 0) == 0


class TestGoals:
    def test_progress_capped(self):
        assert goal_progress(50, 200) == 25
        assert goal_progress(500, 200) == 100
        assert goal_progress(10, 0) == 0

    def test_average_progress_is_weighted(self):
        goals = [_goal(target=100000, current=100000), _goal(target=300000, current=0)]
        assert average_goal_progress(goals) == 25
        assert average_goal_progress([]) == 0

    def test_months_until_rounds_up(self):
        assert months_until(TODAY + timedelta(days=90), TODAY) == 3
        assert months_until(TODAY + timedelta(days=91), TODAY) == 4
        assert months_until(TODAY - timedelta(days=10), TODAY) == 0

    def test_required_monthly_savings(self):
        assert required_monthly_savings(100000, 10000, 3) == 30000
        assert required_monthly_savings(100000, 10000, 0) == 0
        assert required_monthly_savings(100000, 200000, 3) == 0

    def test_goal_timeline(self):
        assert goal_timeline(100000, 0, 30000) == 4
        assert goal_timeline(100000, 0, 0) is None

    def test_income_gap(self):
        assert income_gap(500000, 400000, 150000) == 50000
        assert income_gap(500000, 400000, 50000) == 0

    def test_analyze_goal(self):
        goal = _goal(target=1200000, days=360)
        result = analyze_goal(goal, 500000, 450000, TODAY)

        assert result["months_remaining"] == 12
        assert result["required_monthly_savings_cents"] == 100000
        assert result["current_monthly_savings_cents"] == 50000
        assert result["income_gap_cents"] == 50000
        assert result["is_achievable"] is True

    def test_analyze_goal_unachievable(self):
        goal = _goal(target=5000000, days=60)
        assert analyze_goal(goal, 300000, 300000, TODAY)["is_achievable"] is False


class TestAffordability:
    def test_timeline_derived_from_surplus(self):
        result = analyze_affordability(120000, 0, 500000, 400000)
        assert result["timeline_months"] == 2
        assert result["required_monthly_savings_cents"] == 60000
        assert result["income_increase_cents"] == 0
        assert result["feasible"] is True

    def test_fixed_timeline_needing_more_income(self):
        result = analyze_affordability(1200000, 0, 500000, 450000, timeline_months=6)
        assert result["required_monthly_savings_cents"] == 200000
        assert result["income_increase_cents"] == 150000
        assert result["required_income_cents"] == 650000
        assert result["feasible"] is True

    def test_no_surplus_no_deadline(self):
        result = analyze_affordability(120000, 0, 100, 200)
        assert result["timeline_months"] == 0
        assert result["required_monthly_savings_cents"] == 120000
        assert result["feasible"] is False


class TestAllocations:
    def test_priority_weighting(self):
        goals = [_goal(id=2, priority=2, name="Car"), _goal(id=1, priority=1, name="House")]
        result = goal_allocations(goals, 90000, TODAY)

        assert [r["goal_id"] for r in result] == [1, 2]
        assert [r["recommended_cents"] for r in result] == [60000, 30000]
        assert [r["percentage"] for r in result] == [67, 33]

    def test_nothing_available(self):
        result = goal_allocations([_goal()], 0, TODAY)
        assert result[0]["recommended_cents"] == 0


class TestRunway:
    def test_emergency_runway(self):
        assert emergency_runway(300000, 100000) == 3
        assert emergency_runway(0, 100000) == 0
        assert emergency_runway(100, 0) == UNBOUNDED_MONTHS

    def test_sustainable_runway(self):
        result = financial_runway(300000, 200000, 100000, TODAY)
        assert result["sustainable"] is True
        assert result["total_runway_months"] == UNBOUNDED_MONTHS
        assert result["break_even_month"] is None

    def test_draining_runway(self):
        result = financial_runway(300000, 100000, 200000, TODAY)
        assert result["sustainable"] is False
        assert result["total_runway_months"] == 1.5
        assert result["monthly_net_flow_cents"] == -100000
        assert result["break_even_month"] == "2025-07"

    def test_projections(self):
        rows = balance_projections(1000, 500, 200, 3, TODAY)
        assert [r["month"] for r in rows] == ["2025-07", "2025-08", "2025-09"]
        assert [r["projected_balance_cents"] for r in rows] == [1300, 1600, 1900]
        assert [r["confidence"] for r in rows] == [0.85, 0.75, 0.65]

    def test_projection_confidence_floor(self):
        rows = balance_projections(0, 0, 0, 12, TODAY)
        assert rows[-1]["confidence"] == 0.3


class TestRisk:
    def test_low(self):
        result = assess_risk(30, 6, 0, 2)
        assert result["risk_level"] == "low"
        assert result["risk_factors"] == []

    def test_moderate(self):
        result = assess_risk(30, 6, 0, 1)
        assert result["risk_level"] == "moderate"
        assert result["recommendations"] == ["Diversify income streams"]

    def test_critical(self):
        result = assess_risk(90, 0.5, 50, 1)
        assert result["risk_level"] == "critical"
        assert len(result["risk_factors"]) == 4


def _stream(amount, frequency="MONTHLY", earned="2025-04-10", end=None, active=True):
    return SimpleNamespace(
        effective_monthly_cents=amount, frequency=frequency, is_active=active,
        earned_date=earned, end_date=end, created_at=None,
    )


def _expense(amount, frequency="MONTHLY", incurred="2025-03-01", end=None, active=True):
    return SimpleNamespace(
        amount_cents=amount, frequency=frequency, is_active=active,
        incurred_date=incurred, end_date=end, created_at=None,
    )


class TestLifestyleMetrics:
    def test_recurring_and_one_time_split(self):
        metrics = lifestyle_metrics(
            [_stream(500000), _stream(300000, "ONE_TIME")],
            [_expense(150000), _expense(50000, "ONE_TIME")],
        )
        assert metrics["recurring_income_cents"] == 500000
        assert metrics["one_time_income_cents"] == 300000
        assert metrics["total_monthly_income_cents"] == 800000
        assert metrics["recurring_expenses_cents"] == 150000
        assert metrics["one_time_expenses_cents"] == 50000
        assert metrics["recurring_burn_rate"] == 30
        assert metrics["total_burn_rate"] == 25
        assert metrics["emergency_fund_needed_cents"] == 900000
        assert metrics["one_time_income_percent"] == 37.5
        # single recurring source (20) + one-time share over 30% (15)
        assert metrics["risk_score"] == 35
        assert metrics["sustainability_rating"] == "good"

    def test_diversified_income_with_high_burn(self):
        metrics = lifestyle_metrics([_stream(50000), _stream(50000)], [_expense(90000)])
        assert metrics["income_source_count"] == 2
        assert metrics["risk_score"] == 40
        assert metrics["sustainability_rating"] == "moderate"

    def test_worst_case_is_risky(self):
        metrics = lifestyle_metrics([_stream(100000), _stream(100000, "ONE_TIME")], [_expense(90000)])
        assert metrics["risk_score"] == 75
        assert metrics["sustainability_rating"] == "risky"

    def test_inactive_ignored(self):
        metrics = lifestyle_metrics([_stream(100000, active=False)], [_expense(5000, active=False)])
        assert metrics["total_monthly_income_cents"] == 0
        assert metrics["recurring_burn_rate"] == 0
        assert metrics["income_source_count"] == 0


class TestBurnRateScenarios:
    def test_scenarios(self):
        assert burn_rate_scenarios(500000, 300000) == {
            "current": 60.0,
            "income_down_20": 75.0,
            "income_down_30": 85.71,
            "expenses_up_15": 69.0,
            "expenses_up_25": 75.0,
        }

    def test_capped_at_100(self):
        assert burn_rate_scenarios(100000, 95000)["income_down_30"] == 100.0


class TestAccumulatedBalance:
    def _definitions(self):
        streams = [
            _stream(500000),
            _stream(100000, "ONE_TIME", earned="2025-05-03"),
            _stream(99900, earned="2025-01-01", active=False),
        ]
        expenses = [_expense(150000, end="2025-05-31")]
        return streams, expenses

    def test_running_balance_by_month(self):
        streams, expenses = self._definitions()
        result = accumulated_balance(1000000, streams, expenses, TODAY)

        rows = result["monthly_breakdown"]
        assert [r["month"] for r in rows] == ["2025-03", "2025-04", "2025-05", "2025-06"]
        assert [r["income_cents"] for r in rows] == [0, 500000, 600000, 500000]
        assert [r["expenses_cents"] for r in rows] == [150000, 150000, 150000, 0]
        assert [r["running_balance_cents"] for r in rows] == [850000, 1200000, 1650000, 2150000]
        assert result["current_calculated_balance_cents"] == 2150000
        assert result["total_accumulated_income_cents"] == 1600000
        assert result["total_accumulated_expenses_cents"] == 450000

    def test_from_month(self):
        streams, expenses = self._definitions()
        result = accumulated_balance(1000000, streams, expenses, TODAY, from_month=date(2025, 5, 1))
        assert [r["month"] for r in result["monthly_breakdown"]] == ["2025-05", "2025-06"]
        assert result["current_calculated_balance_cents"] == 1950000

    def test_no_definitions_keeps_starting_balance(self):
        result = accumulated_balance(250000, [], [], TODAY)
        assert result["current_calculated_balance_cents"] == 250000
        assert result["monthly_breakdown"] == []


class TestLifestyleAffordability:
    def test_excellent(self):
        result = lifestyle_affordability(500000, 300000, [(1200000, 12), (100000, 4)])
        assert result["monthly_goal_allocation_cents"] == 125000
        assert result["remaining_after_goals_cents"] == 75000
        assert result["current_affordability"] == "excellent"
        assert result["recommended_income_increase_cents"] == 0

    def test_tight_at_break_even(self):
        result = lifestyle_affordability(500000, 400000, [(1200000, 12)])
        assert result["current_affordability"] == "tight"
        assert result["recommended_income_increase_cents"] == 0

    def test_stressed_recommends_shortfall_plus_ten_percent(self):
        result = lifestyle_affordability(500000, 450000, [(600000, 6)])
        assert result["remaining_after_goals_cents"] == -50000
        assert result["current_affordability"] == "stressed"
        assert result["recommended_income_increase_cents"] == 100000

    def test_allocation_rounds_half_up(self):
        assert lifestyle_affordability(0, 0, [(5, 2)])["monthly_goal_allocation_cents"] == 3
