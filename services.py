from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

import aggregation
import budgeting
import insights as insight_rules
from config import get_settings
from ledger import (
    Ledger,
    TransactionFilters,
    add_transaction,
    delete_budget,
    delete_transaction,
    filter_transactions,
    transactions_between,
    transactions_for_category,
    update_budget,
    update_transaction,
    upsert_budget,
)
from periods import Period, month_window, resolve_period
from schemas import (
    Budget,
    BudgetIn,
    BudgetPatch,
    BudgetView,
    Dashboard,
    Insight,
    InsightsReport,
    MonthlyTrend,
    QuickStats,
    SpendingByCategory,
    Summary,
    Transaction,
    TransactionIn,
    TransactionPatch,
)
from storage import LedgerRepository

logger = logging.getLogger(__name__)

DASHBOARD_TOP_CATEGORIES = 5
DASHBOARD_RECENT = 5


def local_now() -> datetime:
    return datetime.now(ZoneInfo(get_settings().timezone))


def local_today() -> date:
    return local_now().date()


class _LedgerBacked:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.repository = LedgerRepository(session)

    def ledger(self) -> Ledger:
        return self.repository.load()


class TransactionService(_LedgerBacked):
    def list(self, filters: Optional[TransactionFilters] = None) -> list[Transaction]:
        transactions = self.ledger().transactions
        if filters is None:
            return list(transactions)
        return filter_transactions(transactions, filters)

    def get(self, transaction_id: str) -> Transaction:
        return self.ledger().get_transaction(transaction_id)

    def by_category(self, category: str) -> list[Transaction]:
        return transactions_for_category(self.ledger().transactions, category)

    def by_date_range(self, start: date, end: date) -> list[Transaction]:
        return transactions_between(self.ledger().transactions, start, end)

    def recent(self, limit: int = DASHBOARD_RECENT) -> list[Transaction]:
        return aggregation.recent_transactions(self.ledger().transactions, limit)

    def create(self, data: TransactionIn, now: Optional[datetime] = None) -> Transaction:
        ledger, txn = add_transaction(self.ledger(), data, now or local_now())
        self.repository.save_transactions(ledger)
        logger.info(
            f"transaction_created: id={txn.id} type={txn.type.value} "
            f"category={txn.category} amount={txn.amount}"
        )
        return txn

    def update(self, transaction_id: str, patch: TransactionPatch) -> Transaction:
        ledger, txn = update_transaction(self.ledger(), transaction_id, patch)
        self.repository.save_transactions(ledger)
        logger.info(f"transaction_updated: id={txn.id}")
        return txn

    def delete(self, transaction_id: str) -> None:
        ledger = delete_transaction(self.ledger(), transaction_id)
        self.repository.save_transactions(ledger)
        logger.info(f"transaction_deleted: id={transaction_id}")


class BudgetService(_LedgerBacked):
    def list_all(self) -> list[Budget]:
        return list(self.ledger().budgets)

    def get(self, category: str) -> Budget:
        return self.ledger().get_budget(category)

    def upsert(self, data: BudgetIn) -> Budget:
        ledger, budget = upsert_budget(self.ledger(), data)
        self.repository.save_budgets(ledger)
        logger.info(
            f"budget_upserted: category={budget.category} limit={budget.limit} "
            f"period={budget.period.value}"
        )
        return budget

    def update(self, category: str, patch: BudgetPatch) -> Budget:
        ledger, budget = update_budget(self.ledger(), category, patch)
        self.repository.save_budgets(ledger)
        logger.info(f"budget_updated: category={budget.category}")
        return budget

    def delete(self, category: str) -> None:
        ledger = delete_budget(self.ledger(), category)
        self.repository.save_budgets(ledger)
        logger.info(f"budget_deleted: category={category}")

    def progress(self, today: Optional[date] = None) -> list[BudgetView]:
        ledger = self.ledger()
        return budgeting.evaluate_budgets(
            ledger.budgets, ledger.transactions, today or local_today()
        )

    def comparison(self, today: Optional[date] = None) -> list[BudgetView]:
        ledger = self.ledger()
        return budgeting.budget_comparison(
            ledger.budgets, ledger.transactions, today or local_today()
        )


class MetricsService(_LedgerBacked):
    def summary(
        self, period: Optional[Period] = None, today: Optional[date] = None
    ) -> Summary:
        today = today or local_today()
        return aggregation.summarize(
            self.ledger().transactions,
            period or month_window(today),
            today,
            top_limit=DASHBOARD_TOP_CATEGORIES,
        )

    def dashboard(self, today: Optional[date] = None) -> Dashboard:
        today = today or local_today()
        transactions = self.ledger().transactions
        return Dashboard(
            summary=aggregation.summarize(
                transactions,
                month_window(today),
                today,
                top_limit=DASHBOARD_TOP_CATEGORIES,
            ),
            recent_transactions=aggregation.recent_transactions(
                transactions, DASHBOARD_RECENT
            ),
        )

    def spending_by_category(
        self,
        period: Optional[str] = None,
        start: Optional[str] = None,
        end: Optional[str] = None,
        today: Optional[date] = None,
    ) -> SpendingByCategory:
        window = resolve_period(period, start, end, today=today or local_today())
        categories = aggregation.top_categories(self.ledger().transactions, window)
        return SpendingByCategory(
            period=window.slug,
            start=window.start,
            end=window.end,
            total=sum((c.amount for c in categories), aggregation.ZERO),
            categories=categories,
        )

    def monthly_trends(
        self, months: int = 6, today: Optional[date] = None
    ) -> list[MonthlyTrend]:
        return aggregation.monthly_trends(
            self.ledger().transactions, today or local_today(), months
        )


class InsightsService(_LedgerBacked):
    def insights(self, today: Optional[date] = None) -> list[Insight]:
        return insight_rules.generate_insights(
            self.ledger().transactions, today or local_today()
        )

    def quick_stats(self, today: Optional[date] = None) -> QuickStats:
        return insight_rules.quick_stats(
            self.ledger().transactions, today or local_today()
        )

    def report(self, today: Optional[date] = None) -> InsightsReport:
        today = today or local_today()
        transactions = self.ledger().transactions
        return InsightsReport(
            insights=insight_rules.generate_insights(transactions, today),
            stats=insight_rules.quick_stats(transactions, today),
        )
