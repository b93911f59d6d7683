"""
Schedule state persistence tests.
"""

import pytest

from wakegate.db.repositories import NEVER, ScheduleStateRepository


@pytest.mark.asyncio
async def test_unknown_task_has_never_fired(session_factory):
    async with session_factory() as session:
        assert await ScheduleStateRepository(session).get_last_alarm("nothing") == NEVER


@pytest.mark.asyncio
async def test_last_alarm_survives_sessions(session_factory):
    async with session_factory() as session:
        await ScheduleStateRepository(session).set_last_alarm("sync", 1_000)
    async with session_factory() as session:
        await ScheduleStateRepository(session).set_last_alarm("sync", 2_000)

    async with session_factory() as session:
        assert await ScheduleStateRepository(session).get_last_alarm("sync") == 2_000


@pytest.mark.asyncio
async def test_clear_forgets_last_alarm(session_factory):
    async with session_factory() as session:
        await ScheduleStateRepository(session).set_last_alarm("sync", 1_000)

    async with session_factory() as session:
        repo = ScheduleStateRepository(session)
        assert await repo.clear("sync") is True
        assert await repo.clear("sync") is False

    async with session_factory() as session:
        assert await ScheduleStateRepository(session).get_last_alarm("sync") == NEVER


@pytest.mark.asyncio
async def test_failed_session_rolls_back(session_factory):
    with pytest.raises(RuntimeError):
        async with session_factory() as session:
            await ScheduleStateRepository(session).set_last_alarm("sync", 5_000)
            raise RuntimeError("abort")

    async with session_factory() as session:
        assert await ScheduleStateRepository(session).get_last_alarm("sync") == NEVER
