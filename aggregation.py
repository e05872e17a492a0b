"""Pure reporting over a transaction list.

Nothing here touches storage. Every function takes the transactions, the
window to look at and, where "now" matters, the reference day. Rankings are
sorted by amount descending and then by key ascending so equal totals always
come out in the same order.
"""

from __future__ import annotations

from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal
from datetime import date
from typing import Hashable, Iterable, Mapping, Optional, TypeVar

from models import TransactionType
from periods import Period, add_months, month_window
from schemas import CategoryTotal, MonthlyTrend, Summary, Transaction

K = TypeVar("K", bound=Hashable)

ZERO = Decimal("0")
CENT = Decimal("0.01")


def in_window(txn: Transaction, window: Optional[Period]) -> bool:
    return window is None or window.contains(txn.date)


def matching(
    transactions: Iterable[Transaction],
    txn_type: Optional[TransactionType] = None,
    window: Optional[Period] = None,
) -> list[Transaction]:
    return [
        txn
        for txn in transactions
        if (txn_type is None or txn.type == txn_type) and in_window(txn, window)
    ]


def total(
    transactions: Iterable[Transaction],
    txn_type: TransactionType,
    window: Optional[Period] = None,
) -> Decimal:
    return sum((txn.amount for txn in matching(transactions, txn_type, window)), ZERO)


def rank_totals(totals: Mapping[K, Decimal]) -> list[tuple[K, Decimal]]:
    return sorted(totals.items(), key=lambda item: (-item[1], item[0]))


def category_totals(
    transactions: Iterable[Transaction], window: Optional[Period] = None
) -> dict[str, Decimal]:
    sums: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for txn in matching(transactions, TransactionType.expense, window):
        sums[txn.category] += txn.amount
    return dict(rank_totals(sums))


def share(amount: Decimal, whole: Decimal) -> float:
    if not whole:
        return 0.0
    return float(amount / whole * 100)


def top_categories(
    transactions: Iterable[Transaction],
    window: Optional[Period] = None,
    limit: Optional[int] = None,
) -> list[CategoryTotal]:
    totals = category_totals(transactions, window)
    whole = sum(totals.values(), ZERO)
    ranked = list(totals.items())
    if limit is not None:
        ranked = ranked[:limit]
    return [
        CategoryTotal(category=category, amount=amount, share=share(amount, whole))
        for category, amount in ranked
    ]


def average_per_day(total_expenses: Decimal, today: date) -> Decimal:
    """Spend per elapsed day of the current month.

    Divides by ``today.day`` whatever the window, matching the dashboard's
    "Avg/Day" card.
    """
    if not total_expenses:
        return ZERO
    return (total_expenses / today.day).quantize(CENT, rounding=ROUND_HALF_UP)


def weekday_index(day: date) -> int:
    """Sunday=0 .. Saturday=6."""
    return (day.weekday() + 1) % 7


def weekday_totals(
    transactions: Iterable[Transaction], window: Optional[Period] = None
) -> dict[int, Decimal]:
    sums: dict[int, Decimal] = defaultdict(lambda: ZERO)
    for txn in matching(transactions, TransactionType.expense, window):
        sums[weekday_index(txn.date)] += txn.amount
    return dict(rank_totals(sums))


def summarize(
    transactions: Iterable[Transaction],
    window: Period,
    today: date,
    top_limit: Optional[int] = None,
) -> Summary:
    transactions = list(transactions)
    expenses = matching(transactions, TransactionType.expense, window)
    income = matching(transactions, TransactionType.income, window)
    total_expenses = sum((txn.amount for txn in expenses), ZERO)
    total_income = sum((txn.amount for txn in income), ZERO)
    return Summary(
        start=window.start,
        end=window.end,
        total_expenses=total_expenses,
        total_income=total_income,
        balance=total_income - total_expenses,
        expense_count=len(expenses),
        income_count=len(income),
        category_totals=category_totals(expenses),
        top_categories=top_categories(expenses, limit=top_limit),
        average_per_day=average_per_day(total_expenses, today),
    )


def monthly_trends(
    transactions: Iterable[Transaction], today: date, months: int = 6
) -> list[MonthlyTrend]:
    if months < 1:
        raise ValueError("months must be at least 1")
    transactions = list(transactions)
    trends: list[MonthlyTrend] = []
    for offset in range(months - 1, -1, -1):
        window = month_window(add_months(today, -offset))
        income = total(transactions, TransactionType.income, window)
        expenses = total(transactions, TransactionType.expense, window)
        trends.append(
            MonthlyTrend(
                month=f"{window.start.year:04d}-{window.start.month:02d}",
                income=income,
                expenses=expenses,
                balance=income - expenses,
            )
        )
    return trends


def recent_transactions(
    transactions: Iterable[Transaction], limit: int = 5
) -> list[Transaction]:
    return list(transactions)[:limit]
