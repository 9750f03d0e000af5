"""
Send due reminders as web push notifications.
Meant to be scheduled every 30-60 seconds (cron, systemd timer).
Only one run proceeds at a time; a concurrent run exits immediately.

Usage:
    python send_due_reminders.py [--window SECONDS] [--limit N] [--dry-run] [--user ID]

Examples:
    python send_due_reminders.py                  # Default 90s window, 500 reminders
    python send_due_reminders.py --dry-run        # Show what would be sent
    python send_due_reminders.py --window 0       # No floor, include every overdue reminder
    python send_due_reminders.py --user 42        # Only reminders of user #42

Exit code is 0 for every business outcome (including another run holding
the lock) and 1 when infrastructure fails (database, lock backend).
"""
import asyncio
import argparse
import logging
import sys
from pathlib import Path

# Add backend directory to path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

from dotenv import load_dotenv
load_dotenv()

from config import settings
from habitpush.core.error_handling import log_error
from habitpush.core.locking import get_lock_backend
from habitpush.core.monitoring import init_sentry
from habitpush.services.push_service import push_service
from habitpush.services.reminder_dispatcher import ReminderDispatcher, DispatchOptions, DispatchSummary

logger = logging.getLogger(__name__)


async def run_dispatch(options: DispatchOptions, dispatcher=None) -> DispatchSummary:
    """Run one dispatch pass with the configured lock backend"""
    if dispatcher is not None:
        return await dispatcher.run(options)

    lock_backend = get_lock_backend()
    try:
        dispatcher = ReminderDispatcher(
            push_service=push_service,
            lock_backend=lock_backend,
            echo=lambda line: print(line, flush=True),
        )
        return await dispatcher.run(options)
    finally:
        await lock_backend.close()


def print_summary(summary: DispatchSummary) -> None:
    print("=" * 60)
    if not summary.lock_acquired:
        print("Another run is in progress. Exiting.")
        print("=" * 60)
        return
    print("Summary:")
    print(f"   Scanned: {summary.scanned}")
    print(f"   Sent: {summary.sent}")
    print(f"   Failed deliveries: {summary.failed}")
    print(f"   No subscription: {summary.skipped_no_subscription}")
    print(f"   Rescheduled: {summary.rescheduled}")
    print(f"   Deactivated: {summary.deactivated}")
    if summary.dry_run:
        print("   (dry-run, nothing sent or saved)")
    print("=" * 60)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Send due reminders as web push notifications",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python send_due_reminders.py                  # Default window and limit
  python send_due_reminders.py --dry-run        # Preview only
  python send_due_reminders.py --user 42        # Single user
        """
    )
    parser.add_argument(
        "--window",
        type=int,
        default=settings.REMINDER_WINDOW_SECONDS,
        help="Eligibility window in seconds before now, 0 disables the floor (default: %(default)s)"
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=settings.REMINDER_BATCH_LIMIT,
        help="Maximum number of reminders to process (default: %(default)s)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Scan and build notifications without sending or saving anything"
    )
    parser.add_argument(
        "--user",
        type=int,
        default=None,
        help="Only process reminders of this user id"
    )
    return parser


def main(argv=None, dispatcher=None) -> int:
    """Main entry point"""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    args = build_parser().parse_args(argv)
    options = DispatchOptions(
        window_seconds=max(0, args.window),
        limit=max(1, args.limit),
        dry_run=args.dry_run,
        user_id=args.user,
    )

    init_sentry(with_fastapi=False)

    try:
        summary = asyncio.run(run_dispatch(options, dispatcher))
    except Exception as e:
        print(f"\nError running reminder dispatch: {str(e)}", file=sys.stderr)
        log_error(e, context={"command": "send_due_reminders"})
        return 1

    print_summary(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
