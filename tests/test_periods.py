from datetime import date

import pytest

from periods import (
    Period,
    add_months,
    month_to_date,
    month_window,
    previous_month_window,
    resolve_period,
    trailing_week,
)


def test_month_window_covers_whole_calendar_month():
    assert month_window(date(2024, 2, 10)) == Period(
        "this_month", date(2024, 2, 1), date(2024, 2, 29)
    )
    assert month_window(date(2025, 12, 31)).end == date(2025, 12, 31)


def test_previous_month_wraps_year():
    window = previous_month_window(date(2025, 1, 20))
    assert (window.start, window.end) == (date(2024, 12, 1), date(2024, 12, 31))


def test_month_to_date_stops_at_today():
    window = month_to_date(date(2025, 3, 15))
    assert (window.start, window.end) == (date(2025, 3, 1), date(2025, 3, 15))
    assert not window.contains(date(2025, 3, 16))


def test_trailing_week_is_seven_days_ending_today():
    window = trailing_week(date(2025, 3, 1))
    assert (window.start, window.end) == (date(2025, 2, 23), date(2025, 3, 1))
    assert (window.end - window.start).days + 1 == 7


def test_add_months_crosses_years():
    assert add_months(date(2025, 1, 31), -1) == date(2024, 12, 1)
    assert add_months(date(2024, 11, 5), 3) == date(2025, 2, 1)


def test_resolve_period_named_windows():
    today = date(2025, 3, 15)
    assert resolve_period(None, None, None, today=today).slug == "this_month"
    assert resolve_period("last_month", None, None, today=today).start == date(2025, 2, 1)
    assert resolve_period("week", None, None, today=today).start == date(2025, 3, 9)
    everything = resolve_period("all", None, None, today=today)
    assert everything.contains(date(1999, 1, 1))


def test_resolve_period_custom_requires_valid_bounds():
    window = resolve_period("custom", "2025-01-01", "2025-01-31")
    assert window == Period("custom", date(2025, 1, 1), date(2025, 1, 31))
    with pytest.raises(ValueError):
        resolve_period("custom", "2025-01-01", None)
    with pytest.raises(ValueError):
        resolve_period("custom", "2025-02-01", "2025-01-01")
    with pytest.raises(ValueError):
        resolve_period("fortnight", None, None)
