"""
Due reminder scan tests
"""
import pytest
from datetime import datetime, timedelta, timezone

from habitpush.models import Recurrence
from habitpush.services.reminder_scanner import scan_due_reminders

NOW = datetime(2026, 3, 10, 8, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_scan_selects_only_active_reminders_inside_window(
    db_session, make_progression, make_reminder, user
):
    due = await make_reminder(await make_progression(user), NOW - timedelta(seconds=30), Recurrence.DAILY)
    await make_reminder(await make_progression(user), NOW - timedelta(seconds=200))  # older than window
    await make_reminder(await make_progression(user), NOW + timedelta(seconds=1))  # future
    await make_reminder(await make_progression(user), NOW - timedelta(seconds=10), is_active=False)

    items = await scan_due_reminders(db_session, NOW, window_seconds=90, limit=500)

    assert [item.reminder_id for item in items] == [due.id]
    item = items[0]
    assert item.user_id == user.id
    assert item.challenge_name == "Meatless Monday"
    assert item.recurrence == Recurrence.DAILY
    assert item.timezone == "Europe/Paris"
    assert item.scheduled_at_utc == NOW - timedelta(seconds=30)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_window_boundaries_are_inclusive(db_session, make_progression, make_reminder, user):
    at_floor = await make_reminder(await make_progression(user), NOW - timedelta(seconds=90))
    at_now = await make_reminder(await make_progression(user), NOW)

    items = await scan_due_reminders(db_session, NOW, window_seconds=90, limit=500)

    assert {item.reminder_id for item in items} == {at_floor.id, at_now.id}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_zero_window_disables_the_floor(db_session, make_progression, make_reminder, user):
    old = await make_reminder(await make_progression(user), NOW - timedelta(days=3))
    await make_reminder(await make_progression(user), NOW + timedelta(minutes=5))

    items = await scan_due_reminders(db_session, NOW, window_seconds=0, limit=500)

    assert [item.reminder_id for item in items] == [old.id]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_scan_is_ordered_oldest_first_and_limited(db_session, make_progression, make_reminder, user):
    second = await make_reminder(await make_progression(user), NOW - timedelta(seconds=20))
    first = await make_reminder(await make_progression(user), NOW - timedelta(seconds=40))
    await make_reminder(await make_progression(user), NOW - timedelta(seconds=5))

    items = await scan_due_reminders(db_session, NOW, window_seconds=90, limit=2)

    assert [item.reminder_id for item in items] == [first.id, second.id]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_scan_filters_by_user(db_session, make_progression, make_reminder, user, other_user):
    await make_reminder(await make_progression(user), NOW - timedelta(seconds=10))
    theirs = await make_reminder(await make_progression(other_user), NOW - timedelta(seconds=10))

    items = await scan_due_reminders(db_session, NOW, window_seconds=90, limit=500, user_id=other_user.id)

    assert [item.reminder_id for item in items] == [theirs.id]
