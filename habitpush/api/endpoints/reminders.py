"""
Reminder Endpoints
Create, complete and snooze the reminder attached to a progression.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_async_session
from habitpush.core.auth import get_current_user
from habitpush.models import User
from habitpush.schemas.reminder import (
    ReminderCreate,
    ReminderCreated,
    ReminderResponse,
    ReminderCompleted,
    ReminderSnoozed,
)
from habitpush.services import reminder_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reminders", tags=["Reminders"])


@router.get("", response_model=List[ReminderResponse])
async def list_reminders(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Active reminders of the current user, next to fire first"""
    return await reminder_service.list_active_reminders(db, current_user.id)


@router.post(
    "",
    response_model=ReminderCreated,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_reminder(
    data: ReminderCreate,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Create the reminder of a progression.
    Returns 200 with status "exists" when the progression already has an
    active reminder; its schedule is left untouched.
    """
    reminder, created = await reminder_service.create_reminder(
        db,
        user_id=current_user.id,
        progression_id=data.progression_id,
        scheduled_at=data.scheduled_at,
        tz_name=data.timezone,
        recurrence=data.recurrence,
    )
    if not created:
        response.status_code = status.HTTP_200_OK
        return ReminderCreated(id=reminder.id, status="exists")
    return ReminderCreated(id=reminder.id)


@router.post("/{reminder_id}/complete", response_model=ReminderCompleted)
async def complete_reminder(
    reminder_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    await reminder_service.complete_reminder(db, reminder_id, current_user.id)
    return ReminderCompleted(ok=True)


@router.post("/{reminder_id}/snooze", response_model=ReminderSnoozed)
async def snooze_reminder(
    reminder_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    reminder = await reminder_service.snooze_reminder(db, reminder_id, current_user.id)
    return ReminderSnoozed(id=reminder.id, scheduled_at_utc=reminder.scheduled_at_utc)
