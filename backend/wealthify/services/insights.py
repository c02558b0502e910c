"""Rule-based financial insights and month-over-month comparison.

``collect_analytics`` gathers everything the rules look at from the
database; ``generate_insights`` and ``comparison_table`` are pure and work on
that dict.  Rules fire independently, in a fixed order:

    income streams → expense mix → expense trend → burn rate → savings rate
    → goals → emergency fund → income growth → wealth-building capacity
"""

from collections import defaultdict
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ..models import Expense, Goal, IncomeStream, User
from . import calculations as calc
from .money import parse_date, recurring_monthly_cents
from .snapshots import list_snapshots


# ─────────────────────────────────────────────────────────────────────────────
# Inputs
# ─────────────────────────────────────────────────────────────────────────────


def income_stream_performance(streams) -> list[dict]:
    """Actual vs expected monthly amount per stream, as a percent variance."""
    rows = []
    for s in streams:
        expected = s.expected_monthly_cents or 0
        actual = s.effective_monthly_cents or 0
        variance = (actual - expected) / expected * 100 if expected > 0 else 0.0
        if abs(variance) < 10:
            reliability = "high"
        elif abs(variance) < 25:
            reliability = "medium"
        else:
            reliability = "low"
        rows.append({
            "id": s.id,
            "name": s.name,
            "type": s.type,
            "expected_cents": expected,
            "actual_cents": actual,
            "variance": round(variance, 2),
            "reliability": reliability,
        })
    return rows


def expense_breakdown(expenses) -> list[dict]:
    """Monthly spend per category, largest first."""
    by_category: dict[str, dict] = defaultdict(lambda: {"amount_cents": 0, "count": 0, "items": []})
    for e in expenses:
        if not e.is_active:
            continue
        bucket = by_category[e.category]
        bucket["amount_cents"] += recurring_monthly_cents(e.amount_cents, e.frequency)
        bucket["count"] += 1
        bucket["items"].append(e.name)

    total = sum(b["amount_cents"] for b in by_category.values())
    rows = [
        {
            "category": category,
            **bucket,
            "percentage": round(bucket["amount_cents"] / total * 100, 2) if total > 0 else 0.0,
        }
        for category, bucket in by_category.items()
    ]
    rows.sort(key=lambda r: r["amount_cents"], reverse=True)
    return rows


def goal_performance(goals, income_cents: int, expenses_cents: int, today: date) -> list[dict]:
    """Per-goal pace check: on track if the monthly need fits in 30% of the surplus."""
    rows = []
    surplus = income_cents - expenses_cents
    for g in goals:
        days_remaining = (parse_date(g.target_date) - today).days
        months_remaining = max(1, -(-days_remaining // 30))
        required = calc.required_monthly_savings(
            g.target_amount_cents, g.current_amount_cents, months_remaining
        )
        rows.append({
            "id": g.id,
            "name": g.name,
            "category": g.category,
            "priority": g.priority,
            "progress": round(calc.goal_progress(g.current_amount_cents, g.target_amount_cents), 2),
            "days_remaining": days_remaining,
            "months_remaining": months_remaining,
            "required_monthly_cents": required,
            "is_on_track": required <= surplus * 0.3,
        })
    return rows


def collect_analytics(db: Session, user: User, today: Optional[date] = None) -> dict:
    today = today or date.today()
    streams = db.query(IncomeStream).filter(
        IncomeStream.user_id == user.id, IncomeStream.is_active.is_(True)
    ).all()
    expenses = db.query(Expense).filter(
        Expense.user_id == user.id, Expense.is_active.is_(True)
    ).all()
    goals = db.query(Goal).filter(Goal.user_id == user.id).all()

    income = calc.monthly_income_cents(streams)
    spent = calc.monthly_expenses_cents(expenses)
    return {
        "snapshots": list_snapshots(db, user, months=6, today=today),
        "income_streams": income_stream_performance(streams),
        "expense_breakdown": expense_breakdown(expenses),
        "goals": goal_performance(goals, income, spent, today),
        "monthly_income_cents": income,
        "monthly_expenses_cents": spent,
        "current_balance_cents": user.current_balance_cents or 0,
        "burn_rate": calc.burn_rate(spent, income),
        "savings_rate": calc.savings_rate(income, spent),
    }


# ─────────────────────────────────────────────────────────────────────────────
# Rules
# ─────────────────────────────────────────────────────────────────────────────


def _insight(type_, title, description, impact, category, recommendation=None,
             potential_saving_cents=None, timeline=None, actionable=False) -> dict:
    return {
        "type": type_,
        "title": title,
        "description": description,
        "impact": impact,
        "category": category,
        "actionable": actionable,
        "recommendation": recommendation,
        "potential_saving_cents": potential_saving_cents,
        "timeline": timeline,
    }


def generate_insights(data: dict) -> list[dict]:
    insights: list[dict] = []
    income = data["monthly_income_cents"]
    expenses = data["monthly_expenses_cents"]
    snapshots = data["snapshots"]

    streams = data["income_streams"]
    if streams:
        underperforming = [s for s in streams if s["variance"] < -10]
        volatile = [s for s in streams if abs(s["variance"]) > 25]
        if underperforming:
            insights.append(_insight(
                "warning", "Income Streams Underperforming",
                f"{len(underperforming)} income source(s) are performing below expectations.",
                "high", "income",
                "Review and optimize underperforming income streams or consider diversification.",
                timeline="1-2 months", actionable=True,
            ))
        if volatile:
            insights.append(_insight(
                "tip", "Income Stability Risk",
                "Some income sources show high volatility, which could affect financial planning.",
                "medium", "income",
                "Consider building more stable income sources to reduce financial risk.",
                actionable=True,
            ))

    breakdown = data["expense_breakdown"]
    if breakdown:
        largest = max(breakdown, key=lambda b: b["amount_cents"])
        if largest["percentage"] > 40:
            insights.append(_insight(
                "opportunity", "High Expense Category Detected",
                f"{largest['category']} accounts for {largest['percentage']:.1f}% of your expenses.",
                "high", "expenses",
                f"Review {largest['category']} expenses for potential optimization opportunities.",
                potential_saving_cents=round(largest["amount_cents"] * 0.15),
                timeline="2-4 weeks", actionable=True,
            ))

        if len(snapshots) >= 2 and snapshots[1].total_expenses_cents:
            increase = calc.monthly_change(
                snapshots[0].total_expenses_cents, snapshots[1].total_expenses_cents
            )
            if increase > 15:
                insights.append(_insight(
                    "warning", "Expenses Trending Upward",
                    f"Your expenses increased by {increase:.1f}% this month.",
                    "high", "expenses",
                    "Review recent spending patterns and identify areas to cut back.",
                    timeline="This week", actionable=True,
                ))

    burn = data["burn_rate"]
    if burn > 80:
        insights.append(_insight(
            "warning", "Critical Burn Rate",
            f"Your burn rate of {burn:.1f}% indicates you're spending most of your income.",
            "high", "savings",
            "Immediate expense reduction needed. Consider emergency budget adjustments.",
            timeline="This week", actionable=True,
        ))
    elif burn > 60:
        insights.append(_insight(
            "opportunity", "Optimize Spending",
            f"With a {burn:.1f}% burn rate, there's room for improvement in your savings.",
            "medium", "savings",
            "Target reducing expenses by 10-15% to improve your savings rate.",
            potential_saving_cents=round(expenses * 0.125),
            timeline="1-2 months", actionable=True,
        ))

    savings = data["savings_rate"]
    if savings < 10:
        insights.append(_insight(
            "warning", "Low Savings Rate",
            f"Your savings rate of {savings:.1f}% is below the recommended 20% minimum.",
            "high", "savings",
            "Focus on increasing income or reducing expenses to reach a 20% savings rate.",
            timeline="3-6 months", actionable=True,
        ))
    elif savings > 30:
        insights.append(_insight(
            "achievement", "Excellent Savings Rate!",
            f"Your {savings:.1f}% savings rate exceeds financial best practices.",
            "high", "savings",
            "Consider investing excess savings for long-term wealth building.",
        ))

    goals = data["goals"]
    if goals:
        off_track = [g for g in goals if not g["is_on_track"]]
        completed = [g for g in goals if g["progress"] >= 100]
        if off_track:
            required = sum(g["required_monthly_cents"] for g in off_track)
            share = required / income * 100 if income > 0 else 100.0
            insights.append(_insight(
                "warning", "Goals Behind Schedule",
                f"{len(off_track)} goal(s) may not meet their target dates at current pace.",
                "medium", "goals",
                f"Consider increasing monthly contributions by {share:.1f}% of income.",
                timeline="Next month", actionable=True,
            ))
        if completed:
            insights.append(_insight(
                "achievement", "Goals Achieved!",
                f"Congratulations! You've completed {len(completed)} financial goal(s).",
                "high", "goals",
                "Set new ambitious goals to continue your financial growth journey.",
            ))

    balance = data["current_balance_cents"]
    if expenses > 0:
        months = calc.emergency_runway(balance, expenses)
        if months < 3:
            insights.append(_insight(
                "opportunity", "Build Emergency Fund",
                f"Your current balance covers {months:.1f} months of expenses.",
                "high", "savings",
                "Prioritize building a 3-6 month emergency fund for financial security.",
                potential_saving_cents=expenses * 3 - balance,
                timeline="6-12 months", actionable=True,
            ))
        elif months >= 6:
            insights.append(_insight(
                "achievement", "Strong Emergency Fund",
                f"Your emergency fund covers {months:.1f} months of expenses.",
                "medium", "savings",
                "Consider investing excess emergency funds for higher returns.",
            ))

    if len(snapshots) >= 3 and snapshots[2].total_income_cents:
        growth = calc.monthly_change(snapshots[0].total_income_cents, snapshots[2].total_income_cents)
        if growth > 10:
            insights.append(_insight(
                "achievement", "Strong Income Growth",
                f"Your income has grown {growth:.1f}% over the last 3 months.",
                "high", "income",
                "Capitalize on this growth by increasing savings and investment contributions.",
            ))

    if income > 0 and expenses > 0 and (income - expenses) / income > 0.3:
        insights.append(_insight(
            "tip", "High Wealth Building Potential",
            "You have strong capacity for wealth building with your current income-expense ratio.",
            "medium", "general",
            "Consider accelerating investments in diversified portfolios or real estate.",
        ))

    return insights


# ─────────────────────────────────────────────────────────────────────────────
# Comparison
# ─────────────────────────────────────────────────────────────────────────────

# (label, attribute, value type, higher_is_better)
_COMPARED = (
    ("Total Income", "total_income_cents", "currency", True),
    ("Total Expenses", "total_expenses_cents", "currency", False),
    ("Monthly Savings", "total_savings_cents", "currency", True),
    ("Burn Rate", "burn_rate", "percentage", False),
    ("Savings Rate", "savings_rate", "percentage", True),
    ("Health Score", "health_score", "number", True),
)


def comparison_table(snapshots) -> list[dict]:
    """Newest snapshot against the one before it. Needs at least two."""
    if len(snapshots) < 2:
        return []
    current, previous = snapshots[0], snapshots[1]
    rows = []
    for label, attr, kind, higher_is_better in _COMPARED:
        now, then = getattr(current, attr), getattr(previous, attr)
        if now == then:
            status = "stable"
        elif (now > then) == higher_is_better:
            status = "improved"
        else:
            status = "declined"
        rows.append({"metric": label, "current": now, "previous": then, "type": kind, "status": status})
    return rows
