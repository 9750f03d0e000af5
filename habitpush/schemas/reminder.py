"""
Reminder Schemas
Field names are camelCase on the wire to match the browser client.
"""
from typing import Optional
from datetime import datetime
from pydantic import ConfigDict, Field

from habitpush.models.reminder import Recurrence
from habitpush.schemas.base import CamelModel


class ReminderCreate(CamelModel):
    """Schema for creating a reminder"""
    progression_id: int
    # Local time in `timezone` unless an offset is given, parsed by the service
    scheduled_at: Optional[str] = None
    timezone: Optional[str] = Field(None, max_length=64)
    recurrence: Optional[Recurrence] = None

class ReminderCreated(CamelModel):
    id: int
    status: Optional[str] = None  # "exists" when an active reminder was already there

class ReminderResponse(CamelModel):
    """Schema for reminder response"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    progression_id: int
    scheduled_at_utc: datetime
    recurrence: Recurrence
    timezone: Optional[str] = None
    is_active: bool

class ReminderCompleted(CamelModel):
    ok: bool = True

class ReminderSnoozed(CamelModel):
    id: int
    scheduled_at_utc: datetime
