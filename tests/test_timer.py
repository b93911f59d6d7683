"""
Asyncio timer facility tests.
"""

import asyncio

import pytest

from wakegate.models import AlarmTarget, TriggerSpec
from wakegate.tasks import AsyncioTimerFacility


@pytest.fixture
async def timer():
    timer = AsyncioTimerFacility()
    yield timer
    await timer.aclose()


@pytest.mark.asyncio
async def test_one_shot_fires_once(timer):
    fired = []
    timer.arm(TriggerSpec(delay_seconds=0.01), AlarmTarget("once", lambda: fired.append(1)))

    await asyncio.sleep(0.1)

    assert fired == [1]
    assert timer.is_pending("once") is False


@pytest.mark.asyncio
async def test_repeating_trigger_rearms(timer):
    fired = []
    timer.arm(
        TriggerSpec(delay_seconds=0.01, interval_seconds=0.02),
        AlarmTarget("tick", lambda: fired.append(1)),
    )

    await asyncio.sleep(0.15)

    assert len(fired) >= 3
    assert timer.is_pending("tick") is True


@pytest.mark.asyncio
async def test_cancel_by_name(timer):
    fired = []
    timer.arm(TriggerSpec(delay_seconds=0.05), AlarmTarget("job", lambda: fired.append(1)))

    assert timer.cancel(AlarmTarget("job")) is True
    assert timer.cancel(AlarmTarget("job")) is False
    await asyncio.sleep(0.1)

    assert fired == []


@pytest.mark.asyncio
async def test_rearming_replaces_pending_arm(timer):
    fired = []
    timer.arm(TriggerSpec(delay_seconds=0.02), AlarmTarget("job", lambda: fired.append("first")))
    timer.arm(TriggerSpec(delay_seconds=0.02), AlarmTarget("job", lambda: fired.append("second")))

    assert timer.pending() == ["job"]
    await asyncio.sleep(0.1)

    assert fired == ["second"]


@pytest.mark.asyncio
async def test_async_callback_is_awaited(timer):
    done = asyncio.Event()

    async def callback():
        done.set()

    timer.arm(TriggerSpec(delay_seconds=0.01), AlarmTarget("async", callback))

    await asyncio.wait_for(done.wait(), timeout=1)


@pytest.mark.asyncio
async def test_failing_callback_is_logged(timer, caplog):
    def callback():
        raise RuntimeError("callback broke")

    timer.arm(TriggerSpec(delay_seconds=0.01), AlarmTarget("bad", callback))
    await asyncio.sleep(0.05)

    assert "callback broke" in caplog.text


def test_trigger_spec_validation():
    with pytest.raises(ValueError):
        TriggerSpec(delay_seconds=-1)
    with pytest.raises(ValueError):
        TriggerSpec(interval_seconds=0)
    assert TriggerSpec(delay_seconds=1).repeating is False
