from habitpush.models.challenge import (
    User,
    Challenge,
    Progression,
    ProgressionStatus,
    NotificationPreference,
)
from habitpush.models.reminder import Reminder, Recurrence
from habitpush.models.push_subscription import PushSubscription, hash_endpoint

__all__ = [
    "User",
    "Challenge",
    "Progression",
    "ProgressionStatus",
    "NotificationPreference",
    "Reminder",
    "Recurrence",
    "PushSubscription",
    "hash_endpoint",
]
