"""Database repositories for WakeGate state."""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from wakegate.db.tables import ScheduleStateTable
from wakegate.utils.time import utc_now

NEVER = 0


class ScheduleStateRepository:
    """Repository for the last-alarm record of each periodic task."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_last_alarm(self, name: str) -> int:
        """Return epoch milliseconds of the last alarm, or ``NEVER``."""
        result = await self.session.execute(
            select(ScheduleStateTable.last_alarm).where(ScheduleStateTable.name == name)
        )
        value = result.scalar_one_or_none()
        return value or NEVER

    async def set_last_alarm(self, name: str, timestamp_ms: int) -> None:
        """Upsert the last-alarm timestamp for ``name``."""
        row = await self.session.get(ScheduleStateTable, name)
        now = utc_now()
        if row is None:
            self.session.add(
                ScheduleStateTable(name=name, last_alarm=timestamp_ms, updated_at=now)
            )
        else:
            row.last_alarm = timestamp_ms
            row.updated_at = now
        await self.session.flush()

    async def clear(self, name: str) -> bool:
        """Forget the last alarm for ``name``. Returns whether a row existed."""
        result = await self.session.execute(
            delete(ScheduleStateTable).where(ScheduleStateTable.name == name)
        )
        return (result.rowcount or 0) > 0
