from __future__ import annotations

import logging
from typing import Iterable, Optional

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger import Ledger
from models import StorageEntry
from schemas import Budget, Transaction

logger = logging.getLogger(__name__)

EXPENSES_KEY = "expenses"
BUDGETS_KEY = "budgets"

_transactions_adapter = TypeAdapter(list[Transaction])
_budgets_adapter = TypeAdapter(list[Budget])


class StorageError(ValueError):
    pass


def dump_transactions(transactions: Iterable[Transaction]) -> str:
    return _transactions_adapter.dump_json(list(transactions)).decode("utf-8")


def load_transactions(raw: str) -> list[Transaction]:
    try:
        return _transactions_adapter.validate_json(raw)
    except ValidationError as exc:
        logger.error(f"storage_load_failed: key={EXPENSES_KEY} errors={exc.error_count()}")
        raise StorageError(f"Stored {EXPENSES_KEY} are malformed") from exc


def dump_budgets(budgets: Iterable[Budget]) -> str:
    return _budgets_adapter.dump_json(list(budgets)).decode("utf-8")


def load_budgets(raw: str) -> list[Budget]:
    try:
        return _budgets_adapter.validate_json(raw)
    except ValidationError as exc:
        logger.error(f"storage_load_failed: key={BUDGETS_KEY} errors={exc.error_count()}")
        raise StorageError(f"Stored {BUDGETS_KEY} are malformed") from exc


class LocalStorage:
    """String-keyed blob store with the same surface as browser localStorage."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_item(self, key: str) -> Optional[str]:
        entry = self.session.get(StorageEntry, key)
        return entry.value if entry else None

    def set_item(self, key: str, value: str) -> None:
        entry = self.session.get(StorageEntry, key)
        if entry:
            entry.value = value
        else:
            self.session.add(StorageEntry(key=key, value=value))
        self.session.commit()

    def remove_item(self, key: str) -> None:
        entry = self.session.get(StorageEntry, key)
        if entry:
            self.session.delete(entry)
            self.session.commit()

    def keys(self) -> list[str]:
        stmt = select(StorageEntry.key).order_by(StorageEntry.key)
        return list(self.session.scalars(stmt).all())


class LedgerRepository:
    def __init__(self, session: Session) -> None:
        self.storage = LocalStorage(session)

    def load(self) -> Ledger:
        raw_expenses = self.storage.get_item(EXPENSES_KEY)
        raw_budgets = self.storage.get_item(BUDGETS_KEY)
        transactions = load_transactions(raw_expenses) if raw_expenses else []
        budgets = load_budgets(raw_budgets) if raw_budgets else []
        return Ledger(transactions=tuple(transactions), budgets=tuple(budgets))

    def save_transactions(self, ledger: Ledger) -> None:
        self.storage.set_item(EXPENSES_KEY, dump_transactions(ledger.transactions))

    def save_budgets(self, ledger: Ledger) -> None:
        self.storage.set_item(BUDGETS_KEY, dump_budgets(ledger.budgets))

    def save(self, ledger: Ledger) -> None:
        self.save_transactions(ledger)
        self.save_budgets(ledger)
