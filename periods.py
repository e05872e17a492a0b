from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


def _month_end(first: date) -> date:
    if first.month == 12:
        next_month = first.replace(year=first.year + 1, month=1)
    else:
        next_month = first.replace(month=first.month + 1)
    return next_month - date.resolution


def add_months(d: date, count: int) -> date:
    month_index = (d.year * 12) + (d.month - 1) + count
    return date(month_index // 12, (month_index % 12) + 1, 1)


def month_window(today: date) -> Period:
    first = today.replace(day=1)
    return Period("this_month", first, _month_end(first))


def previous_month_window(today: date) -> Period:
    first_this = today.replace(day=1)
    last_month_end = first_this - date.resolution
    return Period("last_month", last_month_end.replace(day=1), last_month_end)


def month_to_date(today: date) -> Period:
    return Period("month_to_date", today.replace(day=1), today)


def trailing_week(today: date) -> Period:
    # seven calendar days ending today
    return Period("week", today - timedelta(days=6), today)


def resolve_period(
    period: Optional[str],
    start: Optional[str],
    end: Optional[str],
    *,
    today: Optional[date] = None,
) -> Period:
    today = today or date.today()
    if not period or period == "this_month":
        return month_window(today)
    if period == "all":
        return Period("all", date.min, date.max)
    if period == "last_month":
        return previous_month_window(today)
    if period == "week":
        return trailing_week(today)
    if period == "custom":
        if not start or not end:
            raise ValueError("Custom period requires start and end dates")
        start_date = date.fromisoformat(start)
        end_date = date.fromisoformat(end)
        if start_date > end_date:
            raise ValueError("Start date must be before end date")
        return Period("custom", start_date, end_date)
    raise ValueError(f"Unknown period: {period}")
