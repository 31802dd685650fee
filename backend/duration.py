"""
Continuous duration since a start date (e.g. a sobriety date).

This is not a streak over discrete check-ins: there is a single start
date and every day since it counts. It lives apart from `streaks` so the
two questions are never forced through the same machinery.
"""

import calendar
from datetime import date

from models import ContinuousDuration


def _add_months(start: date, months: int) -> date:
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    # the 31st has no counterpart in shorter months; use the month's last day
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _whole_months(start: date, today: date) -> int:
    months = (today.year - start.year) * 12 + (today.month - start.month)
    if months > 0 and _add_months(start, months) > today:
        months -= 1
    return max(0, months)


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}{'s' if n != 1 else ''}"


def format_duration(total_days: int, years: int, months: int, days: int) -> str:
    if years > 0:
        text = _plural(years, "year")
        if months > 0:
            text += f", {_plural(months, 'month')}"
        return text
    if months > 0:
        text = _plural(months, "month")
        if days > 0:
            text += f", {_plural(days, 'day')}"
        return text
    return _plural(total_days, "day")


def continuous_duration(start_date: date, today: date) -> ContinuousDuration:
    """Break the span from `start_date` to `today` into calendar units.

    A start date in the future yields zero everywhere.
    """
    if start_date >= today:
        return ContinuousDuration(start_date=start_date, formatted=format_duration(0, 0, 0, 0))

    total_days = (today - start_date).days
    whole_months = _whole_months(start_date, today)
    years, months = divmod(whole_months, 12)
    days = (today - _add_months(start_date, whole_months)).days

    return ContinuousDuration(
        start_date=start_date,
        total_days=total_days,
        years=years,
        months=months,
        days=days,
        formatted=format_duration(total_days, years, months, days),
    )
