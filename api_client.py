"""HTTP client for the ExpenseFlow JSON API.

Every call either returns parsed data or raises :class:`ApiError`. Non-2xx
responses carry only their status code; response bodies are not inspected.
There is no retry.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from typing import Any, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from pydantic import TypeAdapter

from config import get_settings
from ledger import Ledger
from schemas import (
    Budget,
    BudgetIn,
    BudgetPatch,
    BudgetView,
    MonthlyTrend,
    SpendingByCategory,
    Transaction,
    TransactionIn,
    TransactionPatch,
    normalize_category,
)

logger = logging.getLogger(__name__)

_transactions = TypeAdapter(list[Transaction])
_budgets = TypeAdapter(list[Budget])
_budget_views = TypeAdapter(list[BudgetView])
_trends = TypeAdapter(list[MonthlyTrend])


class ApiError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ExpenseApiClient:
    def __init__(
        self, base_url: Optional[str] = None, timeout: Optional[float] = None
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.api_timeout_secs

    def _call(
        self, endpoint: str, method: str = "GET", payload: Optional[str] = None
    ) -> Any:
        url = f"{self.base_url}/api{endpoint}"
        data = payload.encode("utf-8") if payload is not None else None
        req = Request(
            url,
            data=data,
            method=method,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )
        try:
            with urlopen(req, timeout=self.timeout) as resp:
                body = resp.read().decode("utf-8")
        except HTTPError as exc:
            logger.warning(f"api_call_failed: method={method} url={url} status={exc.code}")
            raise ApiError(f"HTTP error! status: {exc.code}", exc.code) from exc
        except (URLError, TimeoutError) as exc:
            logger.warning(f"api_call_failed: method={method} url={url} error={exc}")
            raise ApiError(f"Request to {url} failed") from exc
        if not body:
            return None
        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            raise ApiError(f"Unexpected response from {url}") from exc

    # expenses

    def list_expenses(self) -> list[Transaction]:
        return _transactions.validate_python(self._call("/expenses"))

    def get_expense(self, transaction_id: str) -> Transaction:
        return Transaction.model_validate(
            self._call(f"/expenses/{quote(transaction_id, safe='')}")
        )

    def create_expense(self, data: TransactionIn) -> Transaction:
        return Transaction.model_validate(
            self._call("/expenses", "POST", data.model_dump_json(exclude_none=True))
        )

    def update_expense(
        self, transaction_id: str, patch: TransactionPatch
    ) -> Transaction:
        return Transaction.model_validate(
            self._call(
                f"/expenses/{quote(transaction_id, safe='')}",
                "PUT",
                patch.model_dump_json(exclude_unset=True),
            )
        )

    def delete_expense(self, transaction_id: str) -> None:
        self._call(f"/expenses/{quote(transaction_id, safe='')}", "DELETE")

    def expenses_by_category(self, category: str) -> list[Transaction]:
        return _transactions.validate_python(
            self._call(f"/expenses/category/{quote(category, safe='')}")
        )

    def expenses_by_date_range(self, start: date, end: date) -> list[Transaction]:
        query = urlencode({"start": start.isoformat(), "end": end.isoformat()})
        return _transactions.validate_python(
            self._call(f"/expenses/date-range?{query}")
        )

    # budgets

    def list_budgets(self) -> list[Budget]:
        return _budgets.validate_python(self._call("/budgets"))

    def create_budget(self, data: BudgetIn) -> Budget:
        return Budget.model_validate(
            self._call("/budgets", "POST", data.model_dump_json())
        )

    def update_budget(self, category: str, patch: BudgetPatch) -> Budget:
        return Budget.model_validate(
            self._call(
                f"/budgets/{quote(category, safe='')}",
                "PUT",
                patch.model_dump_json(exclude_unset=True),
            )
        )

    def delete_budget(self, category: str) -> None:
        self._call(f"/budgets/{quote(category, safe='')}", "DELETE")

    # analytics

    def spending_by_category(self, period: Optional[str] = None) -> SpendingByCategory:
        endpoint = "/analytics/spending-by-category"
        if period:
            endpoint = f"{endpoint}?{urlencode({'period': period})}"
        return SpendingByCategory.model_validate(self._call(endpoint))

    def monthly_trends(self) -> list[MonthlyTrend]:
        return _trends.validate_python(self._call("/analytics/monthly-trends"))

    def budget_comparison(self) -> list[BudgetView]:
        return _budget_views.validate_python(
            self._call("/analytics/budget-comparison")
        )


class RemoteLedger:
    """Session-scoped copy of the remote data.

    A failed fetch leaves the previous (possibly empty) lists in place and
    records a readable message in ``error``; reporting keeps working on the
    stale snapshot until a later :meth:`refetch` succeeds. Failed mutations
    record the message too, then re-raise.
    """

    def __init__(self, client: Optional[ExpenseApiClient] = None) -> None:
        self.client = client or ExpenseApiClient()
        self.transactions: list[Transaction] = []
        self.budgets: list[Budget] = []
        self.error: Optional[str] = None
        self.loading = False

    def ledger(self) -> Ledger:
        return Ledger(transactions=tuple(self.transactions), budgets=tuple(self.budgets))

    def refetch(self) -> bool:
        self.loading = True
        self.error = None
        try:
            transactions = self.client.list_expenses()
            budgets = self.client.list_budgets()
        except ApiError as exc:
            self.error = str(exc)
            return False
        finally:
            self.loading = False
        self.transactions = transactions
        self.budgets = budgets
        return True

    def _fail(self, exc: ApiError) -> None:
        self.error = str(exc)

    def add_transaction(self, data: TransactionIn) -> Transaction:
        try:
            txn = self.client.create_expense(data)
        except ApiError as exc:
            self._fail(exc)
            raise
        self.transactions = [txn] + self.transactions
        return txn

    def update_transaction(
        self, transaction_id: str, patch: TransactionPatch
    ) -> Transaction:
        try:
            txn = self.client.update_expense(transaction_id, patch)
        except ApiError as exc:
            self._fail(exc)
            raise
        self.transactions = [
            txn if t.id == transaction_id else t for t in self.transactions
        ]
        return txn

    def delete_transaction(self, transaction_id: str) -> None:
        try:
            self.client.delete_expense(transaction_id)
        except ApiError as exc:
            self._fail(exc)
            raise
        self.transactions = [t for t in self.transactions if t.id != transaction_id]

    def upsert_budget(self, data: BudgetIn) -> Budget:
        try:
            budget = self.client.create_budget(data)
        except ApiError as exc:
            self._fail(exc)
            raise
        if any(b.category == budget.category for b in self.budgets):
            self.budgets = [
                budget if b.category == budget.category else b for b in self.budgets
            ]
        else:
            self.budgets = self.budgets + [budget]
        return budget

    def update_budget(self, category: str, patch: BudgetPatch) -> Budget:
        try:
            budget = self.client.update_budget(category, patch)
        except ApiError as exc:
            self._fail(exc)
            raise
        self.budgets = [
            budget if b.category == budget.category else b for b in self.budgets
        ]
        return budget

    def delete_budget(self, category: str) -> None:
        try:
            self.client.delete_budget(category)
        except ApiError as exc:
            self._fail(exc)
            raise
        key = normalize_category(category)
        self.budgets = [b for b in self.budgets if b.category != key]
