"""Daily study streak tracking."""
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Callable

from auralearn.models import Progress

Clock = Callable[[], date]


def system_clock() -> date:
    return date.today()


def _as_day(today) -> date:
    if isinstance(today, datetime):
        return today.date()
    if isinstance(today, date):
        return today
    raise TypeError(f"expected a date, got {type(today).__name__}")


def _last_day(progress: Progress) -> date | None:
    if progress.last_activity_date is None:
        return None
    return date.fromisoformat(progress.last_activity_date)


def record_activity(progress: Progress, today) -> Progress:
    """Count a qualifying activity on the given calendar day.

    Args:
        progress: Current progress snapshot.
        today: The activity's day; a datetime is truncated to its date.

    Returns:
        A new Progress. Same-day activity returns the snapshot unchanged,
        activity the day after the last one extends the streak, and any
        longer gap restarts it at 1.
    """
    today = _as_day(today)
    last = _last_day(progress)
    if last == today:
        return progress
    if last is not None and last == today - timedelta(days=1):
        streak = progress.streak + 1
    else:
        streak = 1
    return replace(progress, streak=streak, last_activity_date=today.isoformat())


def check_decay(progress: Progress, today) -> Progress:
    """Zero a streak whose last activity is older than yesterday.

    Run once per session start. The last activity date is kept.
    """
    today = _as_day(today)
    last = _last_day(progress)
    if last is None or last >= today - timedelta(days=1):
        return progress
    if progress.streak == 0:
        return progress
    return replace(progress, streak=0)
