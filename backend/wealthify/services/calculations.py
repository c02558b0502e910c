"""Budget and goal arithmetic.

Pure functions, no database access.  Money goes in and comes out as integer
cents; rates and percentages are floats in the 0-100 range.
"""

import decimal
import math
from datetime import date
from typing import Iterable, Optional

from .entry_generation import end_month, start_month
from .money import (
    add_months,
    iter_months,
    month_key,
    monthly_cents,
    parse_date,
    parse_month,
    recurring_monthly_cents,
)

# Stand-in for an unbounded runway / timeline in JSON responses.
UNBOUNDED_MONTHS = 999


def _half_up(value: float) -> int:
    return int(decimal.Decimal(str(value)).quantize(decimal.Decimal("1"), rounding=decimal.ROUND_HALF_UP))


# ─────────────────────────────────────────────────────────────────────────────
# Monthly totals and rates
# ─────────────────────────────────────────────────────────────────────────────


def monthly_income_cents(streams: Iterable) -> int:
    """Steady-state monthly income of the active streams (ONE_TIME excluded)."""
    return sum(
        recurring_monthly_cents(s.effective_monthly_cents, s.frequency)
        for s in streams
        if s.is_active
    )


def monthly_expenses_cents(expenses: Iterable) -> int:
    return sum(
        recurring_monthly_cents(e.amount_cents, e.frequency)
        for e in expenses
        if e.is_active
    )


def burn_rate(expenses: float, income: float) -> float:
    """Expenses as a percentage of income, capped at 100."""
    if income <= 0:
        return 100.0 if expenses > 0 else 0.0
    return min(100.0, expenses / income * 100)


def savings_rate(income: float, expenses: float) -> float:
    if income <= 0:
        return 0.0
    return max(0, income - expenses) / income * 100


def health_score(burn: float, savings: float, goal_progress: float = 0.0) -> int:
    """0-100 score: 40 points burn rate, 40 savings rate, 20 goal progress."""
    if burn > 85:
        burn_points = 5
    elif burn > 70:
        burn_points = 15
    elif burn > 50:
        burn_points = 30
    else:
        burn_points = 40

    if savings > 30:
        savings_points = 40
    elif savings > 20:
        savings_points = 35
    elif savings > 10:
        savings_points = 25
    else:
        savings_points = 10

    goal_points = min(20.0, goal_progress / 100 * 20)
    return _half_up(burn_points + savings_points + goal_points)


def monthly_change(current: float, previous: float) -> float:
    """Signed percent change; 0 when there is nothing to compare against."""
    if not previous:
        return 0.0
    return (current - previous) / previous * 100


def debt_to_income(monthly_debt: float, monthly_income: float) -> float:
    if monthly_income <= 0:
        return 0.0
    return min(100.0, monthly_debt / monthly_income * 100)


# ─────────────────────────────────────────────────────────────────────────────
# Goals
# ─────────────────────────────────────────────────────────────────────────────


def goal_progress(current_cents: int, target_cents: int) -> float:
    if target_cents <= 0:
        return 0.0
    return min(100.0, current_cents / target_cents * 100)


def average_goal_progress(goals: Iterable) -> float:
    """Aggregate progress: total saved over total targeted, as a percentage."""
    goals = list(goals)
    total_target = sum(g.target_amount_cents for g in goals)
    if total_target <= 0:
        return 0.0
    return sum(g.current_amount_cents for g in goals) / total_target * 100


def months_until(target: date, today: date) -> int:
    """Whole 30-day months left until ``target``, never negative."""
    days = (target - today).days
    return max(0, math.ceil(days / 30))


def required_monthly_savings(target_cents: int, current_cents: int, months: int) -> int:
    if months <= 0:
        return 0
    return _half_up(decimal.Decimal(max(0, target_cents - current_cents)) / months)


def goal_timeline(target_cents: int, current_cents: int, monthly_savings_cents: int) -> Optional[int]:
    """Months needed at the given pace; ``None`` when the pace is zero."""
    if monthly_savings_cents <= 0:
        return None
    return math.ceil(max(0, target_cents - current_cents) / monthly_savings_cents)


def income_gap(income_cents: int, expenses_cents: int, needed_savings_cents: int) -> int:
    """Extra monthly income needed on top of current surplus."""
    surplus = max(0, income_cents - expenses_cents)
    return max(0, needed_savings_cents - surplus)


def analyze_goal(goal, income_cents: int, expenses_cents: int, today: date) -> dict:
    months_remaining = months_until(parse_date(goal.target_date), today)
    required = required_monthly_savings(
        goal.target_amount_cents, goal.current_amount_cents, months_remaining
    )
    gap = income_gap(income_cents, expenses_cents, required)
    return {
        "goal_id": goal.id,
        "progress": round(goal_progress(goal.current_amount_cents, goal.target_amount_cents), 2),
        "months_remaining": months_remaining,
        "required_monthly_savings_cents": required,
        "current_monthly_savings_cents": max(0, income_cents - expenses_cents),
        "income_gap_cents": gap,
        "is_achievable": gap <= income_cents * 0.3,
    }


def analyze_affordability(
    target_cents: int,
    current_cents: int,
    income_cents: int,
    expenses_cents: int,
    timeline_months: Optional[int] = None,
) -> dict:
    """Can the user reach ``target_cents`` in time, and what income would it take."""
    surplus = max(0, income_cents - expenses_cents)
    if not timeline_months:
        timeline_months = goal_timeline(target_cents, current_cents, surplus)

    if timeline_months is None:
        # No surplus and no deadline: the whole remainder is needed next month.
        required = max(0, target_cents - current_cents)
    else:
        required = required_monthly_savings(target_cents, current_cents, timeline_months)

    increase = income_gap(income_cents, expenses_cents, required)
    return {
        "timeline_months": timeline_months or 0,
        "required_monthly_savings_cents": required,
        "current_income_cents": income_cents,
        "required_income_cents": income_cents + increase,
        "income_increase_cents": increase,
        "feasible": increase <= income_cents * 0.5,
    }


def goal_allocations(goals: Iterable, available_cents: int, today: date) -> list[dict]:
    """Split monthly savings across goals by priority and deadline urgency.

    Weight is ``1/priority`` times ``1/years-to-target``; overdue goals get
    an urgency of 2.
    """
    goals = sorted(goals, key=lambda g: (g.priority, g.id))
    if available_cents <= 0 or not goals:
        return [
            {"goal_id": g.id, "name": g.name, "recommended_cents": 0, "percentage": 0}
            for g in goals
        ]

    weights = []
    for g in goals:
        days_left = (parse_date(g.target_date) - today).days
        if days_left <= 0:
            urgency = 2.0
        else:
            urgency = 365 / days_left
        weights.append(1 / max(1, g.priority) * urgency)

    total = sum(weights)
    return [
        {
            "goal_id": g.id,
            "name": g.name,
            "recommended_cents": _half_up(w / total * available_cents),
            "percentage": _half_up(w / total * 100),
        }
        for g, w in zip(goals, weights)
    ]


# ─────────────────────────────────────────────────────────────────────────────
# Runway, projections, risk
# ─────────────────────────────────────────────────────────────────────────────


def emergency_runway(savings_cents: int, expenses_cents: int) -> float:
    """Months of expenses the savings cover."""
    if expenses_cents <= 0:
        return float(UNBOUNDED_MONTHS) if savings_cents > 0 else 0.0
    if savings_cents <= 0:
        return 0.0
    return savings_cents / expenses_cents


def financial_runway(balance_cents: int, income_cents: int, expenses_cents: int, today: date) -> dict:
    net_flow = income_cents - expenses_cents
    balance_only = emergency_runway(balance_cents, expenses_cents)

    if net_flow >= 0:
        return {
            "total_runway_months": float(UNBOUNDED_MONTHS),
            "balance_only_runway": round(balance_only, 2),
            "sustainable": True,
            "monthly_net_flow_cents": net_flow,
            "break_even_month": None,
        }

    return {
        "total_runway_months": round(balance_only, 2),
        "balance_only_runway": round(balance_only, 2),
        "sustainable": False,
        "monthly_net_flow_cents": net_flow,
        "break_even_month": month_key(add_months(today, int(balance_only))),
    }


def balance_projections(
    balance_cents: int, income_cents: int, expenses_cents: int, months: int, today: date
) -> list[dict]:
    """Straight-line balance forecast; confidence decays 10 points a month."""
    projections = []
    running = balance_cents
    net = income_cents - expenses_cents
    for i in range(1, months + 1):
        running += net
        projections.append({
            "month": month_key(add_months(today, i)),
            "projected_income_cents": income_cents,
            "projected_expenses_cents": expenses_cents,
            "projected_savings_cents": net,
            "projected_balance_cents": running,
            "confidence": round(max(0.3, 0.95 - 0.1 * i), 2),
        })
    return projections


_RISK_LEVELS = ("low", "moderate", "high")


def assess_risk(burn: float, emergency_months: float, dti: float, income_streams: int) -> dict:
    factors: list[str] = []
    recommendations: list[str] = []

    if burn > 80:
        factors.append("Very high burn rate")
        recommendations.append("Reduce expenses immediately")
    elif burn > 60:
        factors.append("High burn rate")
        recommendations.append("Review and optimize expenses")

    if emergency_months < 1:
        factors.append("No emergency fund")
        recommendations.append("Build emergency fund urgently")
    elif emergency_months < 3:
        factors.append("Insufficient emergency fund")
        recommendations.append("Increase emergency fund to 3-6 months")

    if dti > 40:
        factors.append("High debt burden")
        recommendations.append("Focus on debt reduction")
    elif dti > 25:
        factors.append("Moderate debt burden")
        recommendations.append("Consider debt consolidation")

    if income_streams < 2:
        factors.append("Single income source")
        recommendations.append("Diversify income streams")

    level = _RISK_LEVELS[len(factors)] if len(factors) < len(_RISK_LEVELS) else "critical"
    return {"risk_level": level, "risk_factors": factors, "recommendations": recommendations}


# ─────────────────────────────────────────────────────────────────────────────
# Lifestyle
# ─────────────────────────────────────────────────────────────────────────────

_SUSTAINABILITY = ((20, "excellent"), (40, "good"), (60, "moderate"), (80, "risky"))


def _one_time_cents(definitions: Iterable, amount_attr: str) -> int:
    return sum(
        max(0, getattr(d, amount_attr))
        for d in definitions
        if d.is_active and d.frequency == "ONE_TIME"
    )


def lifestyle_metrics(streams: Iterable, expenses: Iterable) -> dict:
    """Recurring vs one-time split of the active definitions and a 0-100 risk score.

    The risk score (lower is better) adds 40/20/10 points for a recurring burn
    rate above 80/60/40 %, 20 for fewer than two recurring income sources and
    15 when one-time income is more than 30 % of the total.
    """
    streams = list(streams)
    expenses = list(expenses)

    recurring_income = monthly_income_cents(streams)
    recurring_expenses = monthly_expenses_cents(expenses)
    one_time_income = _one_time_cents(streams, "effective_monthly_cents")
    one_time_expenses = _one_time_cents(expenses, "amount_cents")
    total_income = recurring_income + one_time_income
    total_expenses = recurring_expenses + one_time_expenses

    recurring_burn = recurring_expenses / recurring_income * 100 if recurring_income > 0 else 0.0
    total_burn = total_expenses / total_income * 100 if total_income > 0 else 0.0
    sources = sum(1 for s in streams if s.is_active and s.frequency != "ONE_TIME")
    one_time_share = one_time_income / total_income * 100 if total_income > 0 else 0.0

    score = 0
    if recurring_burn > 80:
        score += 40
    elif recurring_burn > 60:
        score += 20
    elif recurring_burn > 40:
        score += 10
    if sources < 2:
        score += 20
    if one_time_share > 30:
        score += 15
    score = min(score, 100)

    rating = next((label for limit, label in _SUSTAINABILITY if score < limit), "critical")
    return {
        "total_monthly_income_cents": total_income,
        "total_monthly_expenses_cents": total_expenses,
        "recurring_income_cents": recurring_income,
        "recurring_expenses_cents": recurring_expenses,
        "one_time_income_cents": one_time_income,
        "one_time_expenses_cents": one_time_expenses,
        "recurring_burn_rate": round(recurring_burn, 2),
        "total_burn_rate": round(total_burn, 2),
        "emergency_fund_needed_cents": recurring_expenses * 6,
        "risk_score": score,
        "income_source_count": sources,
        "one_time_income_percent": round(one_time_share, 2),
        "sustainability_rating": rating,
    }


def burn_rate_scenarios(income_cents: int, expenses_cents: int) -> dict:
    """Burn rate now and after an income drop or an expense rise."""
    return {
        "current": round(burn_rate(expenses_cents, income_cents), 2),
        "income_down_20": round(burn_rate(expenses_cents, income_cents * 0.8), 2),
        "income_down_30": round(burn_rate(expenses_cents, income_cents * 0.7), 2),
        "expenses_up_15": round(burn_rate(expenses_cents * 1.15, income_cents), 2),
        "expenses_up_25": round(burn_rate(expenses_cents * 1.25, income_cents), 2),
    }


def _month_amounts(definitions, start_attr: str, amount_attr: str, today: date) -> dict[str, int]:
    totals: dict[str, int] = {}
    for d in definitions:
        if not d.is_active:
            continue
        first = start_month(d, start_attr, today)
        amount = monthly_cents(max(0, getattr(d, amount_attr)), d.frequency)
        last = first if d.frequency == "ONE_TIME" else end_month(d, today)
        for month in iter_months(first, last):
            key = month_key(month)
            totals[key] = totals.get(key, 0) + amount
    return totals


def accumulated_balance(
    starting_cents: int,
    streams: Iterable,
    expenses: Iterable,
    today: date,
    from_month: Optional[date] = None,
) -> dict:
    """Month-by-month running balance implied by the definitions alone.

    Starts at ``starting_cents`` in ``from_month`` (default: the earliest
    definition start) and runs through the current month.  Each active
    definition counts from its start month to its end month; a ONE_TIME one
    counts once, in full, in its start month.
    """
    income = _month_amounts(streams, "earned_date", "effective_monthly_cents", today)
    spent = _month_amounts(expenses, "incurred_date", "amount_cents", today)

    months = sorted(set(income) | set(spent))
    breakdown = []
    running = starting_cents
    if months or from_month:
        first = from_month or parse_month(months[0])
        for month in iter_months(first, today):
            key = month_key(month)
            net = income.get(key, 0) - spent.get(key, 0)
            running += net
            breakdown.append({
                "month": key,
                "income_cents": income.get(key, 0),
                "expenses_cents": spent.get(key, 0),
                "net_flow_cents": net,
                "running_balance_cents": running,
            })

    return {
        "starting_balance_cents": starting_cents,
        "current_calculated_balance_cents": running,
        "total_accumulated_income_cents": sum(r["income_cents"] for r in breakdown),
        "total_accumulated_expenses_cents": sum(r["expenses_cents"] for r in breakdown),
        "monthly_breakdown": breakdown,
    }


def lifestyle_affordability(
    income_cents: int, expenses_cents: int, goals: Iterable[tuple[int, int]]
) -> dict:
    """Does the surplus cover the monthly saving that a set of goals needs.

    ``goals`` holds ``(amount_cents, months_to_target)`` pairs.
    """
    allocation = _half_up(sum(
        decimal.Decimal(amount) / max(1, months) for amount, months in goals
    ))
    remaining = income_cents - expenses_cents - allocation

    if remaining > income_cents * 0.1:
        rating = "excellent"
    elif remaining > 0:
        rating = "good"
    elif remaining > -income_cents * 0.05:
        rating = "tight"
    else:
        rating = "stressed"

    increase = -remaining + _half_up(income_cents * 0.1) if remaining < 0 else 0
    return {
        "current_affordability": rating,
        "monthly_goal_allocation_cents": allocation,
        "remaining_after_goals_cents": remaining,
        "recommended_income_increase_cents": increase,
    }
