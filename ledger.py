"""The in-memory transaction store.

A :class:`Ledger` is an immutable snapshot of the session's transactions
(newest first) and budgets. Every mutation is a plain function returning a new
ledger, so callers always hold a consistent value and nothing is cached.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Iterable, Optional

from models import TransactionType
from schemas import (
    Budget,
    BudgetIn,
    BudgetPatch,
    Transaction,
    TransactionIn,
    TransactionPatch,
    normalize_category,
)


class TransactionNotFound(ValueError):
    pass


class BudgetNotFound(ValueError):
    pass


@dataclass(frozen=True)
class Ledger:
    transactions: tuple[Transaction, ...] = ()
    budgets: tuple[Budget, ...] = ()

    def get_transaction(self, transaction_id: str) -> Transaction:
        for txn in self.transactions:
            if txn.id == transaction_id:
                return txn
        raise TransactionNotFound(f"Transaction not found: {transaction_id}")

    def get_budget(self, category: str) -> Budget:
        key = normalize_category(category)
        for budget in self.budgets:
            if budget.category == key:
                return budget
        raise BudgetNotFound(f"Budget not found: {key}")


@dataclass
class TransactionFilters:
    type: Optional[TransactionType] = None
    category: Optional[str] = None
    query: Optional[str] = None
    tag: Optional[str] = None


def next_transaction_id(ledger: Ledger, now: datetime) -> str:
    candidate = int(now.timestamp() * 1000)
    taken = {txn.id for txn in ledger.transactions}
    while str(candidate) in taken:
        candidate += 1
    return str(candidate)


def add_transaction(
    ledger: Ledger, data: TransactionIn, now: datetime
) -> tuple[Ledger, Transaction]:
    txn = Transaction(
        id=next_transaction_id(ledger, now),
        amount=data.amount,
        description=data.description,
        category=data.category,
        date=data.date or now.date(),
        type=data.type,
        recurring=data.recurring,
        tags=data.tags,
    )
    return replace(ledger, transactions=(txn,) + ledger.transactions), txn


def update_transaction(
    ledger: Ledger, transaction_id: str, patch: TransactionPatch
) -> tuple[Ledger, Transaction]:
    current = ledger.get_transaction(transaction_id)
    merged = current.model_dump()
    merged.update(patch.model_dump(exclude_unset=True, exclude_none=True))
    updated = Transaction.model_validate(merged)
    transactions = tuple(
        updated if txn.id == transaction_id else txn for txn in ledger.transactions
    )
    return replace(ledger, transactions=transactions), updated


def delete_transaction(ledger: Ledger, transaction_id: str) -> Ledger:
    ledger.get_transaction(transaction_id)
    return replace(
        ledger,
        transactions=tuple(
            txn for txn in ledger.transactions if txn.id != transaction_id
        ),
    )


def upsert_budget(ledger: Ledger, data: BudgetIn) -> tuple[Ledger, Budget]:
    budget = Budget(category=data.category, limit=data.limit, period=data.period)
    if any(b.category == budget.category for b in ledger.budgets):
        budgets = tuple(
            budget if b.category == budget.category else b for b in ledger.budgets
        )
    else:
        budgets = ledger.budgets + (budget,)
    return replace(ledger, budgets=budgets), budget


def update_budget(
    ledger: Ledger, category: str, patch: BudgetPatch
) -> tuple[Ledger, Budget]:
    current = ledger.get_budget(category)
    budget = Budget(
        category=current.category,
        limit=patch.limit if patch.limit is not None else current.limit,
        period=patch.period or current.period,
    )
    budgets = tuple(
        budget if b.category == budget.category else b for b in ledger.budgets
    )
    return replace(ledger, budgets=budgets), budget


def delete_budget(ledger: Ledger, category: str) -> Ledger:
    key = ledger.get_budget(category).category
    return replace(
        ledger, budgets=tuple(b for b in ledger.budgets if b.category != key)
    )


def filter_transactions(
    transactions: Iterable[Transaction], filters: TransactionFilters
) -> list[Transaction]:
    query = (filters.query or "").strip().lower()
    category = normalize_category(filters.category) if filters.category else None
    tag = (filters.tag or "").strip().lower()
    result: list[Transaction] = []
    for txn in transactions:
        if filters.type and txn.type != filters.type:
            continue
        if category and txn.category != category:
            continue
        if query and query not in txn.description.lower() and query not in txn.category:
            continue
        if tag and tag not in {t.lower() for t in txn.tags}:
            continue
        result.append(txn)
    return result


def transactions_for_category(
    transactions: Iterable[Transaction], category: str
) -> list[Transaction]:
    return filter_transactions(transactions, TransactionFilters(category=category))


def transactions_between(
    transactions: Iterable[Transaction], start: date, end: date
) -> list[Transaction]:
    if start > end:
        raise ValueError("Start date must be before end date")
    return [txn for txn in transactions if start <= txn.date <= end]
