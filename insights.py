"""Rule-based spending insights.

Each rule looks at the current transaction list and either returns one
:class:`~schemas.Insight` or ``None``. Rules run in a fixed order and a rule
with nothing to report is simply left out.
"""

from __future__ import annotations

import math
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Iterable, Optional, Sequence

from aggregation import CENT, ZERO, category_totals, matching, weekday_totals
from models import InsightSeverity, TransactionType
from periods import month_window, previous_month_window
from schemas import Insight, QuickStats, Transaction

WEEKDAYS = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)

DOMINANT_SHARE_PCT = Decimal("40")
LARGE_AVERAGE = Decimal("50")
VERY_LARGE_AVERAGE = Decimal("100")
NOTABLE_CHANGE_PCT = Decimal("10")


def format_money(amount: Decimal) -> str:
    return f"${amount.quantize(CENT, rounding=ROUND_HALF_UP)}"


def _month_expenses(transactions: Sequence[Transaction], today: date) -> list[Transaction]:
    return matching(transactions, TransactionType.expense, month_window(today))


def month_over_month(
    transactions: Sequence[Transaction], today: date
) -> Optional[Insight]:
    current = sum((t.amount for t in _month_expenses(transactions, today)), ZERO)
    previous = sum(
        (
            t.amount
            for t in matching(
                transactions, TransactionType.expense, previous_month_window(today)
            )
        ),
        ZERO,
    )
    if not previous:
        return None
    change = (current - previous) / previous * 100
    if not change:
        return None
    delta = format_money(abs(current - previous))
    if change > 0:
        return Insight(
            severity=InsightSeverity.warning,
            title=f"Spending increased by {abs(change):.1f}%",
            description=(
                f"Compared to last month, you've spent {delta} more ({change:+.1f}%)"
            ),
            recommended_action=(
                "Consider reviewing your budget"
                if change > NOTABLE_CHANGE_PCT
                else None
            ),
        )
    return Insight(
        severity=InsightSeverity.positive,
        title=f"Spending decreased by {abs(change):.1f}%",
        description=f"Compared to last month, you've saved {delta} ({change:+.1f}%)",
        recommended_action=(
            "Great job saving money!" if change < -NOTABLE_CHANGE_PCT else None
        ),
    )


def dominant_category(
    transactions: Sequence[Transaction], today: date
) -> Optional[Insight]:
    totals = category_totals(_month_expenses(transactions, today))
    if not totals:
        return None
    category, amount = next(iter(totals.items()))
    share = amount / sum(totals.values(), ZERO) * 100
    dominant = share > DOMINANT_SHARE_PCT
    return Insight(
        severity=InsightSeverity.warning if dominant else InsightSeverity.info,
        title=f"{category.capitalize()} is your top expense",
        description=f"{format_money(amount)} ({share:.1f}% of total spending)",
        recommended_action=(
            "This category dominates your spending" if dominant else None
        ),
    )


def weekday_concentration(
    transactions: Sequence[Transaction], today: date
) -> Optional[Insight]:
    totals = weekday_totals(_month_expenses(transactions, today))
    if not totals:
        return None
    day_index, amount = next(iter(totals.items()))
    day = WEEKDAYS[day_index]
    return Insight(
        severity=InsightSeverity.info,
        title=f"You spend most on {day}s",
        description=f"{format_money(amount)} spent on {day}s this month",
        recommended_action="Plan ahead for high-spending days",
    )


def average_transaction(
    transactions: Sequence[Transaction], today: date
) -> Optional[Insight]:
    expenses = _month_expenses(transactions, today)
    if not expenses:
        return None
    average = sum((t.amount for t in expenses), ZERO) / len(expenses)
    return Insight(
        severity=(
            InsightSeverity.warning if average > LARGE_AVERAGE else InsightSeverity.info
        ),
        title=f"Average transaction: {format_money(average)}",
        description=f"Based on {len(expenses)} transactions this month",
        recommended_action=(
            "Consider if large purchases are necessary"
            if average > VERY_LARGE_AVERAGE
            else None
        ),
    )


def _recurring_expenses(transactions: Iterable[Transaction]) -> list[Transaction]:
    return [
        t for t in matching(transactions, TransactionType.expense) if t.recurring
    ]


def recurring_load(
    transactions: Sequence[Transaction], today: date
) -> Optional[Insight]:
    recurring = _recurring_expenses(transactions)
    if not recurring:
        return None
    amount = sum((t.amount for t in recurring), ZERO)
    return Insight(
        severity=InsightSeverity.info,
        title=f"{format_money(amount)} in recurring expenses",
        description=f"{len(recurring)} recurring transactions tracked",
        recommended_action="Review subscriptions and recurring payments regularly",
    )


RULES: tuple[Callable[[Sequence[Transaction], date], Optional[Insight]], ...] = (
    month_over_month,
    dominant_category,
    weekday_concentration,
    average_transaction,
    recurring_load,
)


def generate_insights(
    transactions: Iterable[Transaction], today: date
) -> list[Insight]:
    snapshot = list(transactions)
    insights: list[Insight] = []
    for rule in RULES:
        insight = rule(snapshot, today)
        if insight is not None:
            insights.append(insight)
    return insights


def quick_stats(transactions: Iterable[Transaction], today: date) -> QuickStats:
    snapshot = list(transactions)
    month_expenses = _month_expenses(snapshot, today)
    return QuickStats(
        total_transactions=len(snapshot),
        categories_used=len({t.category for t in month_expenses}),
        recurring_items=len(_recurring_expenses(snapshot)),
        daily_avg_transactions=(
            math.ceil(len(month_expenses) / today.day) if month_expenses else 0
        ),
    )
