"""Money and calendar-month helpers shared by the ledger services."""

import calendar
import decimal
from datetime import date
from typing import Iterator, Union

Number = Union[int, float, str, decimal.Decimal]

_CENT = decimal.Decimal("1")

# Per-month multipliers for the ledger.  ONE_TIME books the full amount once.
_MONTHLY_FACTORS: dict[str, decimal.Decimal] = {
    "WEEKLY": decimal.Decimal("4.33"),
    "BI_WEEKLY": decimal.Decimal("2.17"),
    "MONTHLY": decimal.Decimal("1"),
    "QUARTERLY": decimal.Decimal("1") / decimal.Decimal("3"),
    "YEARLY": decimal.Decimal("1") / decimal.Decimal("12"),
    "ONE_TIME": decimal.Decimal("1"),
}

FREQUENCIES = tuple(_MONTHLY_FACTORS)


# ─────────────────────────────────────────────────────────────────────────────
# Amounts
# ─────────────────────────────────────────────────────────────────────────────


def to_cents(amount: Number) -> int:
    """Convert an amount in major units to integer cents (ROUND_HALF_UP)."""
    return int(
        (decimal.Decimal(str(amount)) * 100).quantize(_CENT, rounding=decimal.ROUND_HALF_UP)
    )


def cents_to_amount(cents: int) -> float:
    return round(cents / 100, 2)


def monthly_cents(amount_cents: int, frequency: str) -> int:
    """Per-month ledger amount for a recurring definition.

    Unknown frequencies are treated as MONTHLY.
    """
    factor = _MONTHLY_FACTORS.get(frequency, _MONTHLY_FACTORS["MONTHLY"])
    return int(
        (decimal.Decimal(amount_cents) * factor).quantize(_CENT, rounding=decimal.ROUND_HALF_UP)
    )


def recurring_monthly_cents(amount_cents: int, frequency: str) -> int:
    """Like :func:`monthly_cents` but one-off and non-positive amounts count as 0.

    Budget analytics look at the steady-state month, where a ONE_TIME amount
    does not recur.
    """
    if amount_cents is None or amount_cents <= 0 or frequency == "ONE_TIME":
        return 0
    return monthly_cents(amount_cents, frequency)


# ─────────────────────────────────────────────────────────────────────────────
# Calendar months
# ─────────────────────────────────────────────────────────────────────────────


def month_key(d: date) -> str:
    """date → YYYY-MM."""
    return f"{d.year:04d}-{d.month:02d}"


def parse_date(s: str) -> date:
    """YYYY-MM-DD → date."""
    return date.fromisoformat(s[:10])


def parse_month(s: str) -> date:
    """YYYY-MM or YYYY-MM-DD → first day of that month."""
    return date(int(s[:4]), int(s[5:7]), 1)


def add_months(d: date, months: int) -> date:
    """Shift to the first day of the month ``months`` away from ``d``."""
    index = d.year * 12 + (d.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def month_bounds(year: int, month: int) -> tuple[str, str]:
    """Return (YYYY-MM-01, YYYY-MM-<last>) for one calendar month."""
    last = calendar.monthrange(year, month)[1]
    return f"{year:04d}-{month:02d}-01", f"{year:04d}-{month:02d}-{last:02d}"


def iter_months(start: date, end: date) -> Iterator[date]:
    """Yield the first day of every calendar month from ``start`` to ``end`` inclusive."""
    current = date(start.year, start.month, 1)
    last = date(end.year, end.month, 1)
    while current <= last:
        yield current
        current = add_months(current, 1)
