"""
Reminder Service
Creation, completion and snoozing of reminders on behalf of their owner.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from habitpush.core.error_handling import NotFoundException, ValidationException
from habitpush.models import Reminder, Recurrence, Progression
from habitpush.services.recurrence import fire, apply_transition, resolve_timezone, Reschedule

logger = logging.getLogger(__name__)


def parse_scheduled_at(value: Optional[str], tz) -> datetime:
    """
    Parse an ISO 8601 date. A value without offset is local time in tz,
    a value with an offset is taken as is. Result is UTC.
    """
    if not value:
        raise ValidationException("Invalid scheduledAt")
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError as e:
        raise ValidationException("Invalid scheduledAt", details={"scheduledAt": value}) from e

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed.astimezone(timezone.utc)


async def get_owned_progression(db: AsyncSession, progression_id: int, user_id: int) -> Progression:
    progression = await db.get(Progression, progression_id)
    if progression is None or progression.user_id != user_id:
        raise NotFoundException("Progression not found")
    return progression


async def get_owned_reminder(db: AsyncSession, reminder_id: int, user_id: int) -> Reminder:
    """Load a reminder, hiding reminders of other users behind a 404"""
    result = await db.execute(
        select(Reminder)
        .join(Progression, Reminder.progression_id == Progression.id)
        .where(Reminder.id == reminder_id, Progression.user_id == user_id)
    )
    reminder = result.scalar_one_or_none()
    if reminder is None:
        raise NotFoundException("Reminder not found")
    return reminder


async def find_active_reminder(db: AsyncSession, progression_id: int) -> Optional[Reminder]:
    result = await db.execute(
        select(Reminder).where(
            Reminder.progression_id == progression_id,
            Reminder.is_active == True,  # noqa: E712
        )
    )
    return result.scalar_one_or_none()


async def create_reminder(
    db: AsyncSession,
    user_id: int,
    progression_id: int,
    scheduled_at: Optional[str],
    tz_name: Optional[str] = None,
    recurrence: Optional[Recurrence] = None,
) -> Tuple[Reminder, bool]:
    """
    Create the active reminder of a progression.
    Idempotent: when one already exists it is returned with created=False.
    """
    await get_owned_progression(db, progression_id, user_id)

    existing = await find_active_reminder(db, progression_id)
    if existing is not None:
        return existing, False

    tz_name = tz_name or settings.DEFAULT_TIMEZONE
    tz = resolve_timezone(tz_name)
    if tz is None:
        raise ValidationException("Invalid timezone", details={"timezone": tz_name})

    reminder = Reminder(
        progression_id=progression_id,
        scheduled_at_utc=parse_scheduled_at(scheduled_at, tz),
        timezone=tz_name,
        recurrence=recurrence or Recurrence.NONE,
        is_active=True,
    )
    db.add(reminder)
    try:
        await db.commit()
    except IntegrityError:
        # Lost the race on uq_reminders_active_progression
        await db.rollback()
        existing = await find_active_reminder(db, progression_id)
        if existing is None:
            raise
        logger.info(f"Concurrent reminder creation for progression {progression_id}, returning {existing.id}")
        return existing, False

    await db.refresh(reminder)
    logger.info(f"Reminder {reminder.id} created for progression {progression_id} at {reminder.scheduled_at_utc.isoformat()}")
    return reminder, True


async def complete_reminder(db: AsyncSession, reminder_id: int, user_id: int) -> Reminder:
    """Mark the current occurrence done: same transition as a firing"""
    reminder = await get_owned_reminder(db, reminder_id, user_id)
    if not reminder.is_active:
        return reminder

    transition = fire(reminder)
    apply_transition(reminder, transition)
    await db.commit()

    if isinstance(transition, Reschedule):
        logger.info(f"Reminder {reminder.id} completed, next at {transition.scheduled_at_utc.isoformat()}")
    else:
        logger.info(f"Reminder {reminder.id} completed and deactivated")
    return reminder


async def snooze_reminder(db: AsyncSession, reminder_id: int, user_id: int) -> Reminder:
    reminder = await get_owned_reminder(db, reminder_id, user_id)
    reminder.scheduled_at_utc = reminder.scheduled_at_utc + timedelta(minutes=settings.REMINDER_SNOOZE_MINUTES)
    await db.commit()
    return reminder


async def list_active_reminders(db: AsyncSession, user_id: int) -> List[Reminder]:
    result = await db.execute(
        select(Reminder)
        .join(Progression, Reminder.progression_id == Progression.id)
        .where(
            Progression.user_id == user_id,
            Reminder.is_active == True,  # noqa: E712
        )
        .order_by(Reminder.scheduled_at_utc.asc())
    )
    return list(result.scalars().all())
