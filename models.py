from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


class TransactionType(str, Enum):
    income = "income"
    expense = "expense"


class BudgetPeriod(str, Enum):
    monthly = "monthly"
    weekly = "weekly"


class BudgetStatus(str, Enum):
    ok = "ok"
    near = "near"
    over = "over"


class InsightSeverity(str, Enum):
    warning = "warning"
    positive = "positive"
    info = "info"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utcnow, onupdate=_utcnow, nullable=False
    )


class StorageEntry(Base, TimestampMixin):
    """One string-keyed JSON blob, the server-side stand-in for localStorage."""

    __tablename__ = "storage_entries"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
