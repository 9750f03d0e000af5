"""
Recurrence Engine
Computes what happens to a reminder once it has fired.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from habitpush.models.reminder import Recurrence
from habitpush.models.types import to_utc_aware


@dataclass(frozen=True)
class Reschedule:
    """Keep the reminder active and move it to the next occurrence"""
    scheduled_at_utc: datetime


@dataclass(frozen=True)
class Deactivate:
    """Retire the reminder, its scheduled time is left as is"""


Transition = Union[Reschedule, Deactivate]


RECURRENCE_STEPS = {
    Recurrence.DAILY: timedelta(days=1),
    Recurrence.WEEKLY: timedelta(days=7),
}


def resolve_timezone(name: Optional[str]) -> Optional[ZoneInfo]:
    """Return the IANA zone, or None when the name is empty or unknown"""
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return None


def next_occurrence(scheduled_at_utc: datetime, step: timedelta, tz_name: Optional[str]) -> datetime:
    """
    Add calendar days to the local wall-clock time, then convert back to UTC.

    Aware-datetime arithmetic in Python is wall-clock arithmetic, so an 8pm
    reminder stays at 8pm local time across DST changes. Without a usable
    timezone we fall back to plain UTC arithmetic.
    """
    scheduled_at_utc = to_utc_aware(scheduled_at_utc)
    tz = resolve_timezone(tz_name)
    if tz is None:
        return scheduled_at_utc + step

    local = scheduled_at_utc.astimezone(tz)
    return (local + step).astimezone(timezone.utc)


def fire(reminder, fired_at_utc: Optional[datetime] = None) -> Transition:
    """
    Pure transition for a fired reminder.

    reminder only needs recurrence, scheduled_at_utc and timezone attributes,
    so both ORM rows and scanner DTOs work. fired_at_utc is optional and does
    not affect the result: the next occurrence is always computed from the
    scheduled time, not from when the job ran.
    """
    recurrence = Recurrence(reminder.recurrence)
    step = RECURRENCE_STEPS.get(recurrence)
    if step is None:
        return Deactivate()
    return Reschedule(next_occurrence(reminder.scheduled_at_utc, step, reminder.timezone))


def apply_transition(reminder, transition: Transition) -> None:
    """Apply a transition to an ORM reminder in place"""
    if isinstance(transition, Reschedule):
        reminder.scheduled_at_utc = transition.scheduled_at_utc
    else:
        reminder.is_active = False
