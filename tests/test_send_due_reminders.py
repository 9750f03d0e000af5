"""
send_due_reminders command tests
"""
import pytest
from datetime import datetime, timezone

from send_due_reminders import main, build_parser
from habitpush.services.reminder_dispatcher import DispatchSummary


class StubDispatcher:
    def __init__(self, summary=None, error=None):
        self.summary = summary or DispatchSummary(started_at=datetime.now(timezone.utc))
        self.error = error
        self.options = None

    async def run(self, options):
        self.options = options
        if self.error is not None:
            raise self.error
        return self.summary


@pytest.mark.unit
def test_defaults():
    args = build_parser().parse_args([])
    assert args.window == 90
    assert args.limit == 500
    assert args.dry_run is False
    assert args.user is None


@pytest.mark.unit
def test_options_are_passed_to_the_dispatcher(capsys):
    dispatcher = StubDispatcher(DispatchSummary(scanned=4, sent=3, failed=1, dry_run=True))

    code = main(["--window", "30", "--limit", "5", "--dry-run", "--user", "7"], dispatcher=dispatcher)

    assert code == 0
    options = dispatcher.options
    assert (options.window_seconds, options.limit, options.dry_run, options.user_id) == (30, 5, True, 7)
    out = capsys.readouterr().out
    assert "Scanned: 4" in out
    assert "dry-run" in out


@pytest.mark.unit
def test_out_of_range_values_are_clamped():
    dispatcher = StubDispatcher()

    assert main(["--window", "-5", "--limit", "0"], dispatcher=dispatcher) == 0
    assert dispatcher.options.window_seconds == 0
    assert dispatcher.options.limit == 1


@pytest.mark.unit
def test_lock_contention_exits_zero(capsys):
    dispatcher = StubDispatcher(DispatchSummary(lock_acquired=False))

    assert main([], dispatcher=dispatcher) == 0
    assert "Another run is in progress" in capsys.readouterr().out


@pytest.mark.unit
def test_infrastructure_failure_exits_one(capsys):
    dispatcher = StubDispatcher(error=ConnectionRefusedError("database unreachable"))

    assert main([], dispatcher=dispatcher) == 1
    assert "database unreachable" in capsys.readouterr().err
