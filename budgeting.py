from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from aggregation import ZERO, matching
from models import BudgetPeriod, BudgetStatus, TransactionType
from periods import Period, month_to_date, trailing_week
from schemas import Budget, BudgetView, Transaction

NEAR_LIMIT_PCT = Decimal("80")
FULL_PCT = Decimal("100")


def budget_window(period: BudgetPeriod, today: date) -> Period:
    # Monthly budgets are calendar aligned, weekly ones trail from today.
    if period == BudgetPeriod.weekly:
        return trailing_week(today)
    return month_to_date(today)


def spent_for(
    budget: Budget, transactions: Iterable[Transaction], today: date
) -> Decimal:
    window = budget_window(budget.period, today)
    return sum(
        (
            txn.amount
            for txn in matching(transactions, TransactionType.expense, window)
            if txn.category == budget.category
        ),
        ZERO,
    )


def budget_percentage(spent: Decimal, limit: Decimal) -> Optional[Decimal]:
    """Share of ``limit`` used, or ``None`` when the limit is zero."""
    if not limit:
        return None
    return spent / limit * 100


def classify(percentage: Optional[Decimal]) -> BudgetStatus:
    if percentage is None or percentage > FULL_PCT:
        return BudgetStatus.over
    if percentage > NEAR_LIMIT_PCT:
        return BudgetStatus.near
    return BudgetStatus.ok


def evaluate_budget(
    budget: Budget, transactions: Iterable[Transaction], today: date
) -> BudgetView:
    spent = spent_for(budget, transactions, today)
    percentage = budget_percentage(spent, budget.limit)
    return BudgetView(
        category=budget.category,
        limit=budget.limit,
        period=budget.period,
        spent=spent,
        remaining=budget.limit - spent,
        percentage=float(percentage) if percentage is not None else None,
        status=classify(percentage),
    )


def evaluate_budgets(
    budgets: Iterable[Budget], transactions: Iterable[Transaction], today: date
) -> list[BudgetView]:
    transactions = list(transactions)
    return [evaluate_budget(budget, transactions, today) for budget in budgets]


def budget_comparison(
    budgets: Iterable[Budget], transactions: Iterable[Transaction], today: date
) -> list[BudgetView]:
    views = evaluate_budgets(budgets, transactions, today)
    return sorted(
        views,
        key=lambda v: (
            -(v.percentage if v.percentage is not None else float("inf")),
            v.category,
        ),
    )
