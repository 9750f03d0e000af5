"""
Due Reminder Scanner
Selects the reminders a dispatch run should fire.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from habitpush.models import Reminder, Recurrence, Progression, Challenge
from habitpush.models.types import to_utc_aware


@dataclass(frozen=True)
class DueReminder:
    """Flat view of a due reminder with the fields dispatch needs"""
    reminder_id: int
    progression_id: int
    user_id: int
    challenge_id: int
    challenge_name: str
    scheduled_at_utc: datetime
    recurrence: Recurrence
    timezone: Optional[str]


def build_due_query(
    now: datetime,
    window_seconds: int,
    limit: int,
    user_id: Optional[int] = None,
):
    """
    Eligibility: active, due at or before now, and (unless window is 0) not
    older than now - window. Older reminders are left untouched so a
    scheduler outage does not fire the whole backlog at once; they are picked
    up again at their next natural occurrence.
    """
    now = to_utc_aware(now)
    stmt = (
        select(
            Reminder.id,
            Reminder.progression_id,
            Progression.user_id,
            Challenge.id,
            Challenge.name,
            Reminder.scheduled_at_utc,
            Reminder.recurrence,
            Reminder.timezone,
        )
        .join(Progression, Reminder.progression_id == Progression.id)
        .join(Challenge, Progression.challenge_id == Challenge.id)
        .where(Reminder.is_active == True)  # noqa: E712
        .where(Reminder.scheduled_at_utc <= now)
        .order_by(Reminder.scheduled_at_utc.asc(), Reminder.id.asc())
        .limit(max(1, limit))
    )

    if window_seconds > 0:
        stmt = stmt.where(Reminder.scheduled_at_utc >= now - timedelta(seconds=window_seconds))

    if user_id is not None:
        stmt = stmt.where(Progression.user_id == user_id)

    return stmt


async def scan_due_reminders(
    db: AsyncSession,
    now: datetime,
    window_seconds: int,
    limit: int,
    user_id: Optional[int] = None,
) -> List[DueReminder]:
    """Run the due query, oldest first"""
    result = await db.execute(build_due_query(now, max(0, window_seconds), limit, user_id))
    return [DueReminder(*row) for row in result.all()]
