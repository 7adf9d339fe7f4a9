"""
Ledger Analytics

Pure read-side aggregations over entries and investments.

IMPORTANT: Spending totals count EXPENSE entries only. A transfer moves
money between the user's own accounts; it is not consumption.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, NamedTuple, Optional, Union

from finance_tracker.errors import ValidationError
from finance_tracker.models.finance import (
    DEFAULT_CATEGORY_COLOR,
    EntryType,
    Investment,
    SpendingEntry,
)


DateLike = Union[date, str]


class MonthlyTrendPoint(NamedTuple):
    year: int
    month: int
    label: str
    target: Decimal
    actual: Decimal
    difference: Decimal


class CategorySlice(NamedTuple):
    category: str
    amount: Decimal
    color: str


class InvestmentSummary(NamedTuple):
    total: Decimal
    this_month: Decimal
    this_year: Decimal


def as_date(value: DateLike) -> date:
    """Accept a date or an ISO 'YYYY-MM-DD' string."""
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid date: {value!r}") from e


def _expenses(entries: Iterable[SpendingEntry]) -> Iterable[SpendingEntry]:
    for entry in entries:
        if entry.type == EntryType.EXPENSE:
            yield entry
        elif entry.type == EntryType.TRANSFER:
            continue
        else:
            raise ValidationError(f"Unsupported entry type: {entry.type!r}")


def monthly_spending(entries: Iterable[SpendingEntry], year: int, month: int) -> Decimal:
    """Total expenses dated in the given month (month is 1-12)."""
    if not 1 <= month <= 12:
        raise ValidationError(f"Month must be between 1 and 12, got {month}")
    return sum(
        (e.amount for e in _expenses(entries)
         if e.date.year == year and e.date.month == month),
        Decimal(0),
    )


def spending_by_category(
    entries: Iterable[SpendingEntry],
    start_date: DateLike,
    end_date: DateLike,
) -> dict[str, Decimal]:
    """Expense totals per category between two dates, both inclusive."""
    start, end = as_date(start_date), as_date(end_date)
    totals: dict[str, Decimal] = {}
    for entry in _expenses(entries):
        if start <= entry.date <= end:
            totals[entry.category] = totals.get(entry.category, Decimal(0)) + entry.amount
    return totals


def _shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def monthly_trend(
    entries: Iterable[SpendingEntry],
    monthly_target: Decimal,
    months: int = 6,
    today: Optional[date] = None,
) -> list[MonthlyTrendPoint]:
    """Target vs actual for the last `months` months, oldest first, current month last."""
    if months < 1:
        raise ValidationError("months must be at least 1")
    today = today or date.today()
    entries = list(entries)

    points = []
    for offset in range(months - 1, -1, -1):
        year, month = _shift_month(today.year, today.month, -offset)
        actual = monthly_spending(entries, year, month)
        points.append(MonthlyTrendPoint(
            year=year,
            month=month,
            label=date(year, month, 1).strftime("%b %y"),
            target=monthly_target,
            actual=actual,
            difference=monthly_target - actual,
        ))
    return points


def category_breakdown(
    entries: Iterable[SpendingEntry],
    start_date: DateLike,
    end_date: DateLike,
    category_colors: dict[str, str],
) -> list[CategorySlice]:
    """Per-category totals with their chart colour, largest first."""
    totals = spending_by_category(entries, start_date, end_date)
    slices = [
        CategorySlice(category, amount, category_colors.get(category, DEFAULT_CATEGORY_COLOR))
        for category, amount in totals.items()
    ]
    slices.sort(key=lambda s: s.amount, reverse=True)
    return slices


def total_investments(investments: Iterable[Investment]) -> Decimal:
    return sum((i.amount for i in investments), Decimal(0))


def investment_summary(
    investments: Iterable[Investment],
    today: Optional[date] = None,
) -> InvestmentSummary:
    today = today or date.today()
    investments = list(investments)
    this_year = [i for i in investments if i.date.year == today.year]
    this_month = [i for i in this_year if i.date.month == today.month]
    return InvestmentSummary(
        total=total_investments(investments),
        this_month=total_investments(this_month),
        this_year=total_investments(this_year),
    )
