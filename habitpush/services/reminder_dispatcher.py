"""
Reminder Dispatcher
One end-to-end run of the due reminder job: lock, scan, deliver, advance.
"""
import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import update

from config import settings
from database import AsyncSessionLocal
from habitpush.core.error_handling import LockContentionError
from habitpush.core.locking import hold_lock
from habitpush.models import Reminder
from habitpush.services.push_service import PushService, DeliveryReport
from habitpush.services.recurrence import fire, Reschedule, Transition
from habitpush.services.reminder_scanner import DueReminder, scan_due_reminders
from habitpush.services.subscription_service import get_active_subscriptions

logger = logging.getLogger(__name__)


@dataclass
class DispatchOptions:
    window_seconds: int = settings.REMINDER_WINDOW_SECONDS
    limit: int = settings.REMINDER_BATCH_LIMIT
    dry_run: bool = False
    user_id: Optional[int] = None


@dataclass
class DispatchSummary:
    """Counters for one run, informational only"""
    scanned: int = 0
    sent: int = 0
    failed: int = 0
    skipped_no_subscription: int = 0
    rescheduled: int = 0
    deactivated: int = 0
    dry_run: bool = False
    lock_acquired: bool = True
    started_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat() if self.started_at else None
        return data


@dataclass(frozen=True)
class StagedWrite:
    """
    A transition waiting for the next flush. expected_scheduled_at_utc is the
    value read by the scan; the write is dropped if the row moved since.
    """
    reminder_id: int
    expected_scheduled_at_utc: datetime
    transition: Transition


def build_payload(due: DueReminder, now: datetime, frontend_base_url: str) -> Dict[str, Any]:
    """Notification shown by the service worker for a due reminder"""
    return {
        "title": "Habit reminder",
        "body": f"Time to work on: {due.challenge_name}",
        "data": {
            "url": f"{frontend_base_url.rstrip('/')}/progression/",
            "reminderId": due.reminder_id,
        },
        "actions": [
            {"action": "open", "title": "Open"},
            {"action": "done", "title": "Done"},
            {"action": "snooze", "title": "Later"},
        ],
        "tag": f"reminder-{due.reminder_id}-{int(now.timestamp())}",
        "renotify": True,
        "requireInteraction": True,
    }


def format_report(report: DeliveryReport) -> str:
    reason = report.reason or report.exception
    return (
        f"{'OK' if report.success else 'FAIL'}  [{report.status or '-'}]  "
        f"{report.endpoint[:64]}  {reason or '-'}"
    )


class ReminderDispatcher:
    """Coordinates a single dispatch run"""

    def __init__(
        self,
        push_service: PushService,
        lock_backend,
        session_factory=None,
        frontend_base_url: Optional[str] = None,
        lock_name: Optional[str] = None,
        lock_ttl: Optional[int] = None,
        flush_every: Optional[int] = None,
        advance_without_subscriptions: Optional[bool] = None,
        echo: Optional[Callable[[str], None]] = None,
    ):
        self.push_service = push_service
        self.lock_backend = lock_backend
        self.session_factory = session_factory or AsyncSessionLocal
        self.frontend_base_url = frontend_base_url if frontend_base_url is not None else settings.FRONTEND_BASE_URL
        self.lock_name = lock_name or settings.REMINDER_LOCK_NAME
        self.lock_ttl = lock_ttl or settings.REMINDER_LOCK_TTL_SECONDS
        self.flush_every = max(1, flush_every or settings.REMINDER_FLUSH_EVERY)
        self.advance_without_subscriptions = (
            settings.REMINDER_ADVANCE_WITHOUT_SUBSCRIPTIONS
            if advance_without_subscriptions is None
            else advance_without_subscriptions
        )
        self.echo = echo or logger.info

    async def run(self, options: Optional[DispatchOptions] = None, now: Optional[datetime] = None) -> DispatchSummary:
        """
        Run once. Lock contention ends the run as a no-op summary with
        lock_acquired=False; lock backend and database failures propagate.
        """
        options = options or DispatchOptions()
        now = now or datetime.now(timezone.utc)
        summary = DispatchSummary(dry_run=options.dry_run, started_at=now)

        try:
            async with hold_lock(self.lock_backend, self.lock_name, self.lock_ttl):
                await self._run_locked(options, now, summary)
        except LockContentionError:
            logger.warning(f"Another dispatch run holds '{self.lock_name}', exiting")
            summary.lock_acquired = False

        return summary

    async def _run_locked(self, options: DispatchOptions, now: datetime, summary: DispatchSummary) -> None:
        window = max(0, options.window_seconds)
        limit = max(1, options.limit)
        self.echo(
            f"Start {now.strftime('%Y-%m-%d %H:%M:%S')} (UTC), window {window}s, limit {limit}"
            f"{' [DRY-RUN]' if options.dry_run else ''}"
        )

        async with self.session_factory() as session:
            due_items = await scan_due_reminders(session, now, window, limit, options.user_id)
            staged: List[StagedWrite] = []

            for index, due in enumerate(due_items, start=1):
                summary.scanned += 1
                transition = await self._process(session, due, now, options, summary)
                if transition is not None:
                    staged.append(StagedWrite(due.reminder_id, due.scheduled_at_utc, transition))

                if index % self.flush_every == 0:
                    await self._flush(session, staged, summary)

            await self._flush(session, staged, summary)

        self.echo(
            f"Reminders processed: {summary.scanned} - sent: {summary.sent} - failed: {summary.failed}"
            f"{' - (dry-run)' if options.dry_run else ''}"
        )

    async def _process(
        self,
        session,
        due: DueReminder,
        now: datetime,
        options: DispatchOptions,
        summary: DispatchSummary,
    ) -> Optional[Transition]:
        """Deliver one reminder, returns the transition to stage (None in dry run)"""
        subscriptions = await get_active_subscriptions(session, due.user_id)

        if not subscriptions:
            summary.skipped_no_subscription += 1
            self.echo(f"[{due.reminder_id}] No active subscription for user #{due.user_id}")
            if options.dry_run or not self.advance_without_subscriptions:
                return None
            return fire(due)

        payload = build_payload(due, now, self.frontend_base_url)

        if options.dry_run:
            self.echo(
                f"[DRY] #{due.reminder_id} -> user #{due.user_id} "
                f"({len(subscriptions)} subs) - {due.challenge_name}"
            )
            return None

        reports = await self.push_service.send_with_report(subscriptions, payload)

        delivered = False
        for report in reports:
            self.echo(format_report(report))
            if report.success:
                delivered = True
            else:
                summary.failed += 1
        if delivered:
            summary.sent += 1

        return fire(due)

    async def _flush(self, session, staged: List[StagedWrite], summary: DispatchSummary) -> None:
        """Write staged transitions guarded by the scanned state, then commit"""
        if not staged:
            # Still commit: expired subscriptions may have been touched in memory
            await session.commit()
            return

        updated_at = datetime.now(timezone.utc)
        for write in staged:
            if isinstance(write.transition, Reschedule):
                values = {"scheduled_at_utc": write.transition.scheduled_at_utc}
            else:
                values = {"is_active": False}
            values["updated_at"] = updated_at

            result = await session.execute(
                update(Reminder)
                .where(
                    Reminder.id == write.reminder_id,
                    Reminder.is_active == True,  # noqa: E712
                    Reminder.scheduled_at_utc == write.expected_scheduled_at_utc,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if not result.rowcount:
                logger.info(f"Reminder {write.reminder_id} changed during dispatch, keeping the newer state")
                continue

            if isinstance(write.transition, Reschedule):
                summary.rescheduled += 1
            else:
                summary.deactivated += 1

        await session.commit()
        staged.clear()
