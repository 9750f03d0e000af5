"""
push_test command tests
"""
import pytest

from push_test import run_push_test, TEST_PAYLOAD


@pytest.mark.asyncio
@pytest.mark.integration
async def test_reports_every_active_subscription(
    push_service, sender, session_factory, make_subscription, user, other_user, capsys
):
    await make_subscription(user, "https://push.example.com/alice")
    await make_subscription(other_user, "https://push.example.com/bob")
    await make_subscription(other_user, "https://push.example.com/old", is_active=False)
    sender.failures["https://push.example.com/bob"] = 410

    succeeded = await run_push_test(push_service, session_factory)

    assert succeeded == 1
    assert sorted(sender.endpoints) == ["https://push.example.com/alice", "https://push.example.com/bob"]
    assert sender.calls[0]["payload"] == TEST_PAYLOAD
    out = capsys.readouterr().out.splitlines()
    assert out[0].startswith("OK  [201]  https://push.example.com/alice")
    assert out[1].startswith("FAIL  [410]  https://push.example.com/bob")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_no_active_subscription(push_service, sender, session_factory, capsys):
    assert await run_push_test(push_service, session_factory) == 0
    assert "No active subscription" in capsys.readouterr().out
    assert sender.calls == []
