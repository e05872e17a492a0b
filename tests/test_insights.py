from datetime import date
from decimal import Decimal

from insights import format_money, generate_insights, quick_stats
from models import InsightSeverity, TransactionType
from schemas import Transaction

TODAY = date(2025, 3, 15)


def _txn(
    txn_id: str,
    amount: str,
    category: str = "food",
    day: date = TODAY,
    txn_type: TransactionType = TransactionType.expense,
    recurring: bool = False,
) -> Transaction:
    return Transaction(
        id=txn_id,
        amount=Decimal(amount),
        description="Test",
        category=category,
        date=day,
        type=txn_type,
        recurring=recurring,
    )


def test_income_only_produces_no_insights():
    transactions = [_txn("1", "1000", "salary", txn_type=TransactionType.income)]
    assert generate_insights(transactions, TODAY) == []


def test_month_over_month_increase_is_a_warning():
    transactions = [
        _txn("1", "100", day=date(2025, 2, 10)),
        _txn("2", "150", day=date(2025, 3, 2)),
    ]
    insight = generate_insights(transactions, TODAY)[0]
    assert insight.severity == InsightSeverity.warning
    assert insight.title == "Spending increased by 50.0%"
    assert "$50.00" in insight.description
    assert "+50.0%" in insight.description
    assert insight.recommended_action == "Consider reviewing your budget"


def test_month_over_month_decrease_is_positive():
    transactions = [
        _txn("1", "200", day=date(2025, 2, 10)),
        _txn("2", "150", day=date(2025, 3, 2)),
    ]
    insight = generate_insights(transactions, TODAY)[0]
    assert insight.severity == InsightSeverity.positive
    assert insight.title == "Spending decreased by 25.0%"
    assert "$50.00" in insight.description
    assert insight.recommended_action == "Great job saving money!"


def test_month_over_month_is_skipped_without_change_or_history():
    unchanged = [
        _txn("1", "80", day=date(2025, 2, 10)),
        _txn("2", "80", day=date(2025, 3, 2)),
    ]
    no_history = [_txn("1", "80", day=date(2025, 3, 2))]
    for transactions in (unchanged, no_history):
        titles = [i.title for i in generate_insights(transactions, TODAY)]
        assert not any(t.startswith("Spending") for t in titles)


def test_rules_run_in_fixed_order():
    transactions = [
        _txn("1", "100", day=date(2025, 2, 10)),
        _txn("2", "150", day=date(2025, 3, 2)),
        _txn("3", "9.99", "bills", day=date(2024, 11, 5), recurring=True),
    ]
    insights = generate_insights(transactions, TODAY)
    assert [i.title for i in insights] == [
        "Spending increased by 50.0%",
        "Food is your top expense",
        "You spend most on Sundays",
        "Average transaction: $150.00",
        "$9.99 in recurring expenses",
    ]
    assert [i.severity for i in insights] == [
        InsightSeverity.warning,
        InsightSeverity.warning,
        InsightSeverity.info,
        InsightSeverity.warning,
        InsightSeverity.info,
    ]


def test_dominant_category_is_info_when_spending_is_spread():
    transactions = [
        _txn("1", "10", "travel"),
        _txn("2", "10", "bills"),
        _txn("3", "10", "food"),
    ]
    dominant = generate_insights(transactions, TODAY)[0]
    assert dominant.title == "Bills is your top expense"
    assert dominant.severity == InsightSeverity.info
    assert dominant.description == "$10.00 (33.3% of total spending)"
    assert dominant.recommended_action is None


def test_weekday_ties_pick_the_earlier_day():
    transactions = [
        _txn("1", "20", day=date(2025, 3, 11)),  # Tuesday
        _txn("2", "20", day=date(2025, 3, 10)),  # Monday
    ]
    titles = [i.title for i in generate_insights(transactions, TODAY)]
    assert "You spend most on Mondays" in titles


def test_small_average_transaction_is_info():
    transactions = [_txn("1", "20"), _txn("2", "30")]
    average = [
        i for i in generate_insights(transactions, TODAY) if i.title.startswith("Average")
    ][0]
    assert average.title == "Average transaction: $25.00"
    assert average.description == "Based on 2 transactions this month"
    assert average.severity == InsightSeverity.info


def test_recurring_load_ignores_income_and_window():
    transactions = [
        _txn("1", "12.50", "entertainment", day=date(2023, 1, 1), recurring=True),
        _txn("2", "7.50", "bills", day=date(2025, 3, 1), recurring=True),
        _txn("3", "3000", "salary", txn_type=TransactionType.income, recurring=True),
    ]
    recurring = generate_insights(transactions, TODAY)[-1]
    assert recurring.title == "$20.00 in recurring expenses"
    assert recurring.description == "2 recurring transactions tracked"


def test_quick_stats():
    transactions = [
        _txn("1", "10", "food"),
        _txn("2", "10", "bills", recurring=True),
        _txn("3", "10", "food", day=date(2025, 2, 1)),
        _txn("4", "900", "salary", txn_type=TransactionType.income),
    ]
    stats = quick_stats(transactions, TODAY)
    assert stats.total_transactions == 4
    assert stats.categories_used == 2
    assert stats.recurring_items == 1
    assert stats.daily_avg_transactions == 1
    assert quick_stats([], TODAY).daily_avg_transactions == 0


def test_money_rounds_half_up():
    assert format_money(Decimal("0.125")) == "$0.13"
    assert format_money(Decimal("2.675")) == "$2.68"
    assert format_money(Decimal("40")) == "$40.00"
