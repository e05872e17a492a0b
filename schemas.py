import datetime as dt
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator

from models import BudgetPeriod, BudgetStatus, InsightSeverity, TransactionType

# Amounts stay exact in memory and go over the wire as plain JSON numbers.
# Whole cents with at most 12 digits, so the number form reads back exactly.
MONEY_DIGITS = 12
MONEY_PLACES = 2

Money = Annotated[
    Decimal, PlainSerializer(float, return_type=float, when_used="json")
]


def normalize_category(value: str) -> str:
    return value.strip().lower()


def normalize_tags(values: list[str]) -> list[str]:
    tags: list[str] = []
    seen: set[str] = set()
    for raw in values:
        name = raw.strip()
        if not name or name.lower() in seen:
            continue
        seen.add(name.lower())
        tags.append(name)
    return tags


class _TransactionFields(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("category", check_fields=False)
    @classmethod
    def _category(cls, value: Optional[str]) -> Optional[str]:
        return normalize_category(value) if value is not None else value

    @field_validator("tags", mode="before", check_fields=False)
    @classmethod
    def _split_tags(cls, value: object) -> object:
        if isinstance(value, str):
            return value.split(",")
        return value

    @field_validator("tags", check_fields=False)
    @classmethod
    def _dedupe_tags(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        return normalize_tags(value) if value is not None else value


class TransactionIn(_TransactionFields):
    amount: Money = Field(
        ..., gt=0, max_digits=MONEY_DIGITS, decimal_places=MONEY_PLACES
    )
    description: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1, max_length=100)
    date: Optional[dt.date] = None
    type: TransactionType = TransactionType.expense
    recurring: bool = False
    tags: list[str] = Field(default_factory=list)


class TransactionPatch(_TransactionFields):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    amount: Optional[Money] = Field(
        default=None, gt=0, max_digits=MONEY_DIGITS, decimal_places=MONEY_PLACES
    )
    description: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    date: Optional[dt.date] = None
    type: Optional[TransactionType] = None
    recurring: Optional[bool] = None
    tags: Optional[list[str]] = None


class Transaction(_TransactionFields):
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(..., min_length=1)
    amount: Money = Field(
        ..., gt=0, max_digits=MONEY_DIGITS, decimal_places=MONEY_PLACES
    )
    description: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    date: dt.date
    type: TransactionType
    recurring: bool = False
    tags: list[str] = Field(default_factory=list)


class BudgetIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    category: str = Field(..., min_length=1, max_length=100)
    limit: Money = Field(
        ..., gt=0, max_digits=MONEY_DIGITS, decimal_places=MONEY_PLACES
    )
    period: BudgetPeriod = BudgetPeriod.monthly

    @field_validator("category")
    @classmethod
    def _category(cls, value: str) -> str:
        return normalize_category(value)


class BudgetPatch(BaseModel):
    model_config = ConfigDict(extra="forbid")

    limit: Optional[Money] = Field(
        default=None, gt=0, max_digits=MONEY_DIGITS, decimal_places=MONEY_PLACES
    )
    period: Optional[BudgetPeriod] = None


class Budget(BaseModel):
    """Stored budget. ``spent`` is never persisted; any stored value is dropped."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    category: str = Field(..., min_length=1)
    limit: Money = Field(
        ..., ge=0, max_digits=MONEY_DIGITS, decimal_places=MONEY_PLACES
    )
    period: BudgetPeriod = BudgetPeriod.monthly

    @field_validator("category")
    @classmethod
    def _category(cls, value: str) -> str:
        return normalize_category(value)


class BudgetView(BaseModel):
    category: str
    limit: Money
    period: BudgetPeriod
    spent: Money
    remaining: Money
    percentage: Optional[float]
    status: BudgetStatus


class Insight(BaseModel):
    severity: InsightSeverity
    title: str
    description: str
    recommended_action: Optional[str] = None


class CategoryTotal(BaseModel):
    category: str
    amount: Money
    share: float


class Summary(BaseModel):
    start: dt.date
    end: dt.date
    total_expenses: Money
    total_income: Money
    balance: Money
    expense_count: int
    income_count: int
    category_totals: dict[str, Money]
    top_categories: list[CategoryTotal]
    average_per_day: Money


class MonthlyTrend(BaseModel):
    month: str
    income: Money
    expenses: Money
    balance: Money


class QuickStats(BaseModel):
    total_transactions: int
    categories_used: int
    recurring_items: int
    daily_avg_transactions: int


class Dashboard(BaseModel):
    summary: Summary
    recent_transactions: list[Transaction]


class InsightsReport(BaseModel):
    insights: list[Insight]
    stats: QuickStats


class SpendingByCategory(BaseModel):
    period: str
    start: dt.date
    end: dt.date
    total: Money
    categories: list[CategoryTotal]
