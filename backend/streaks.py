"""
Streak engine: turn a sparse log of completion events into streak numbers.

Two steps, no state between calls:

1. `normalize()` projects every event's `logged_at` into one reference
   time zone, truncates it to a calendar date and collapses same-day
   events, newest first.
2. `compute_streaks()` walks those days to derive the current streak
   (ending today, or yesterday while today is still open), the best
   streak anywhere in history, and the distinct-day total.

Nothing here reads the system clock: callers pass `now` (or `today`) and
the zone explicitly, so results are deterministic.
"""

from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Protocol, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from errors import InvalidTimezoneError
from models import StreakResult

ONE_DAY = timedelta(days=1)

TimeZoneLike = Union[str, ZoneInfo]


class HasLoggedAt(Protocol):
    logged_at: datetime


def resolve_timezone(tz: TimeZoneLike) -> ZoneInfo:
    if isinstance(tz, ZoneInfo):
        return tz
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidTimezoneError(f"Unknown time zone: {tz!r}") from e


def _require_aware(moment: datetime) -> None:
    if moment.tzinfo is None or moment.utcoffset() is None:
        raise ValueError(f"Timestamp must include timezone info: {moment.isoformat()}")


def to_calendar_day(moment: datetime, tz: TimeZoneLike) -> date:
    """Date of `moment` as seen on a wall calendar in `tz`."""
    _require_aware(moment)
    try:
        return moment.astimezone(resolve_timezone(tz)).date()
    except OverflowError:
        # the projection fell off either end of the representable calendar
        return date.min if moment.year == 1 else date.max


def today_in(tz: TimeZoneLike, now: datetime) -> date:
    return to_calendar_day(now, tz)


def normalize(events: Iterable[HasLoggedAt], tz: TimeZoneLike) -> list[date]:
    """One calendar day per distinct date in `tz`, most recent first.

    Future-dated events are not filtered here.
    """
    zone = resolve_timezone(tz)
    days = {to_calendar_day(e.logged_at, zone) for e in events}
    return sorted(days, reverse=True)


def _previous(day: date) -> Optional[date]:
    """The calendar day before `day`, or None at the start of the calendar."""
    if day == date.min:
        return None
    return day - ONE_DAY


def _current_streak(days: list[date], today: date, is_active_today: bool) -> int:
    # Today is not over yet, so a run ending yesterday still counts.
    cursor = today if is_active_today else _previous(today)
    streak = 0
    for day in days:
        if cursor is None:
            break
        if day == cursor:
            streak += 1
            cursor = _previous(cursor)
        elif day < cursor:
            break
    return streak


def _best_streak(days: list[date]) -> int:
    best = 0
    run = 0
    expected: Optional[date] = days[0]
    for day in days:
        if day == expected:
            run += 1
            best = max(best, run)
        else:
            run = 1
        expected = _previous(day)
    return best


def compute_streaks(days: Iterable[date], today: date) -> StreakResult:
    """Derive streak numbers from normalized calendar days.

    Days after `today` are ignored: a pre-logged or clock-skewed entry
    must not move `last_logged_date` past today or count toward a run.
    """
    days = sorted({d for d in days if d <= today}, reverse=True)
    if not days:
        return StreakResult.empty()

    last = days[0]
    is_active_today = last == today
    current = _current_streak(days, today, is_active_today)
    best = _best_streak(days)

    return StreakResult(
        current_streak=current,
        best_streak=max(best, current),
        total_days=len(days),
        last_logged_date=last,
        is_active_today=is_active_today,
    )


def calculate_streaks(events: Iterable[HasLoggedAt], tz: TimeZoneLike, now: datetime) -> StreakResult:
    """Normalize `events` in `tz` and compute daily streaks as of `now`."""
    zone = resolve_timezone(tz)
    return compute_streaks(normalize(events, zone), today_in(zone, now))
