"""
Aggregation of expenses and incomes.

Pure functions: group by category, filter by calendar period, sum, and
compute savings. Nothing here touches storage or the network.

Calendar periods follow the local calendar ("same day", "same month",
"same year" as now), not fixed-length windows. Timezone-aware timestamps
are converted to local time before comparing; naive ones are taken as
local already.
"""

from collections import defaultdict
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional, Sequence, TypeVar, Union

from expense_tracker.models.records import (
    CategoryTotal,
    Expense,
    Income,
    Period,
    Savings,
)


Record = TypeVar("Record", Expense, Income)


def _local(moment: datetime) -> datetime:
    if moment.tzinfo is not None:
        return moment.astimezone()
    return moment


def is_within_period(period: Period, reference: datetime, target: datetime) -> bool:
    """True if `target` falls in the same calendar `period` as `reference`."""
    if period == Period.ALL:
        return True

    reference = _local(reference)
    target = _local(target)

    if period == Period.DAY:
        return target.date() == reference.date()
    if period == Period.MONTH:
        return (target.year, target.month) == (reference.year, reference.month)
    if period == Period.YEAR:
        return target.year == reference.year

    raise ValueError(f"Unknown period: {period}")


def filter_by_period(
    records: Iterable[Record],
    period: Period,
    now: Optional[datetime] = None,
) -> list[Record]:
    """Keep the records dated in the same calendar period as `now`."""
    if period == Period.ALL:
        return list(records)

    now = now or datetime.now()
    return [record for record in records if is_within_period(period, now, record.date)]


def sum_amounts(records: Iterable[Union[Expense, Income]]) -> Decimal:
    return sum((record.amount for record in records), Decimal("0"))


def group_by_category(expenses: Iterable[Expense]) -> dict[str, list[Expense]]:
    """Expenses keyed by category, categories in alphabetical order."""
    groups: dict[str, list[Expense]] = defaultdict(list)
    for expense in expenses:
        groups[expense.category or ""].append(expense)
    return {category: groups[category] for category in sorted(groups)}


def category_totals(expenses: Iterable[Expense]) -> list[CategoryTotal]:
    """Sum of amounts per category, sorted by category name."""
    return [
        CategoryTotal(category=category, amount=sum_amounts(records))
        for category, records in group_by_category(expenses).items()
    ]


def _shift_back(day: date, period: Period) -> date:
    """One month or one year earlier, clamped to the end of shorter months."""
    if period == Period.MONTH:
        year, month = (day.year, day.month - 1) if day.month > 1 else (day.year - 1, 12)
    elif period == Period.YEAR:
        year, month = day.year - 1, day.month
    else:
        return day

    for candidate_day in range(day.day, 0, -1):
        try:
            return date(year, month, candidate_day)
        except ValueError:
            continue
    raise ValueError(f"Cannot shift {day} back one {period.value}")


def savings_for_period(
    expenses: Sequence[Expense],
    incomes: Sequence[Income],
    period: Period,
    now: Optional[datetime] = None,
) -> Decimal:
    """Income minus expenses for the calendar `period` containing `now`."""
    now = now or datetime.now()
    return (
        sum_amounts(filter_by_period(incomes, period, now))
        - sum_amounts(filter_by_period(expenses, period, now))
    )


def calculate_savings(
    expenses: Sequence[Expense],
    incomes: Sequence[Income],
    now: Optional[datetime] = None,
) -> list[Savings]:
    """
    Savings for today, this month, this year and all time, in that order.

    The month and year bars are labelled with a date one month (one year)
    before today, the way the savings chart has always shown them. The
    amounts themselves cover the current month and year.
    """
    now = now or datetime.now()
    today = _local(now).date()

    return [
        Savings(
            period=period,
            reference_date=_shift_back(today, period),
            amount=savings_for_period(expenses, incomes, period, now),
        )
        for period in (Period.DAY, Period.MONTH, Period.YEAR, Period.ALL)
    ]


def convert_savings(savings: Iterable[Savings], rate: Decimal) -> list[Savings]:
    """Scale every savings amount by a conversion rate."""
    return [
        saving.model_copy(update={"amount": saving.amount * rate})
        for saving in savings
    ]
