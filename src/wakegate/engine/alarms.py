"""Staleness-gated scheduling of periodic alarms."""

import logging
from datetime import datetime, timedelta
from typing import Any, AsyncContextManager, Callable, Optional, Protocol, Union

from sqlalchemy.ext.asyncio import AsyncSession

from wakegate.config import settings
from wakegate.db.base import get_session
from wakegate.db.repositories import NEVER, ScheduleStateRepository
from wakegate.engine.dispatcher import WorkDispatcher
from wakegate.models import AlarmTarget, Destination, TriggerSpec
from wakegate.observability.metrics import metrics
from wakegate.utils.time import epoch_millis, from_epoch_millis

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncContextManager[AsyncSession]]
Clock = Callable[[], int]


class TimerFacility(Protocol):
    def arm(self, trigger: TriggerSpec, target: AlarmTarget) -> None:
        ...

    def cancel(self, target: AlarmTarget) -> bool:
        ...


class AlarmPolicy(Protocol):
    """A periodic task: how to arm it, and what to submit when it fires."""

    name: str
    max_age: timedelta

    def schedule_alarms(self, timer: TimerFacility, target: AlarmTarget) -> None:
        ...

    def send_work(self, dispatcher: WorkDispatcher) -> None:
        ...


class IntervalAlarmPolicy:
    """Fire every ``interval`` (first after ``first_delay``) and submit fixed work."""

    def __init__(
        self,
        name: str,
        interval: timedelta,
        destination: Union[Destination, str],
        payload: Optional[dict[str, Any]] = None,
        max_age: Optional[timedelta] = None,
        first_delay: Optional[timedelta] = None,
    ):
        if interval <= timedelta(0):
            raise ValueError(f"interval must be positive, got {interval}")
        self.name = name
        self.interval = interval
        self.destination = destination
        self.payload = dict(payload or {})
        self.max_age = max_age or timedelta(seconds=settings.default_alarm_max_age_seconds)
        self.first_delay = interval if first_delay is None else first_delay

    def schedule_alarms(self, timer: TimerFacility, target: AlarmTarget) -> None:
        timer.arm(
            TriggerSpec(
                delay_seconds=self.first_delay.total_seconds(),
                interval_seconds=self.interval.total_seconds(),
            ),
            target,
        )

    def send_work(self, dispatcher: WorkDispatcher) -> None:
        dispatcher.submit(self.destination, self.payload)


def is_stale(last_alarm: int, now: int, max_age: timedelta) -> bool:
    """
    True when the last alarm is older than ``max_age``.

    ``now <= last_alarm`` (clock went backwards) is never stale.
    """
    max_age_ms = int(max_age.total_seconds() * 1000)
    return now > last_alarm and now - last_alarm > max_age_ms


class AlarmScheduler:
    """
    Arm, skip or cancel the alarms of named periodic tasks.

    State per task is Unscheduled/Scheduled. The persisted ``last_alarm``
    timestamp is written by the callback path when an alarm fires, not by
    ``schedule_alarms``; repeated non-forced scheduling before the first fire
    keeps evaluating against the old timestamp and may re-arm again.
    """

    def __init__(
        self,
        timer: TimerFacility,
        dispatcher: WorkDispatcher,
        session_factory: SessionFactory = get_session,
        clock: Clock = epoch_millis,
    ):
        self.timer = timer
        self.dispatcher = dispatcher
        self.session_factory = session_factory
        self.clock = clock
        self._policies: dict[str, AlarmPolicy] = {}

    def register(self, policy: AlarmPolicy) -> None:
        """Make a policy known (for scheduling by name and on startup)."""
        self._policies[policy.name] = policy

    def get_policy(self, name: str) -> Optional[AlarmPolicy]:
        return self._policies.get(name)

    def policies(self) -> list[str]:
        return sorted(self._policies)

    def target_for(self, policy: AlarmPolicy) -> AlarmTarget:
        return AlarmTarget(name=policy.name, callback=lambda: self.on_alarm(policy))

    async def schedule_alarms(self, policy: AlarmPolicy, force: bool = True) -> bool:
        """
        Arm ``policy`` if forced, never fired, or stale.

        Returns True when the timer facility was asked to arm.
        """
        self.register(policy)

        async with self.session_factory() as session:
            last_alarm = await ScheduleStateRepository(session).get_last_alarm(policy.name)

        now = self.clock()
        should_arm = last_alarm == NEVER or force or is_stale(last_alarm, now, policy.max_age)

        if not should_arm:
            metrics.inc_counter("alarms.skipped")
            logger.debug(f"Alarm {policy.name} is fresh (last fired {last_alarm}), not re-arming")
            return False

        policy.schedule_alarms(self.timer, self.target_for(policy))
        metrics.inc_counter("alarms.armed")
        logger.info(f"Armed alarm {policy.name} (force={force}, last fired {last_alarm})")
        return True

    async def cancel_alarms(self, name: str) -> None:
        """Cancel any pending arm for ``name`` and forget its last alarm time."""
        self.timer.cancel(AlarmTarget(name=name))

        async with self.session_factory() as session:
            await ScheduleStateRepository(session).clear(name)

        metrics.inc_counter("alarms.cancelled")
        logger.info(f"Cancelled alarm {name}")

    async def on_alarm(self, policy: AlarmPolicy) -> None:
        """Alarm callback: record the fire time, then submit the policy's work."""
        now = self.clock()
        async with self.session_factory() as session:
            await ScheduleStateRepository(session).set_last_alarm(policy.name, now)

        metrics.inc_counter("alarms.fired")
        policy.send_work(self.dispatcher)

    async def reschedule_all(self) -> int:
        """Force re-arm of every known policy, as after a process restart."""
        count = 0
        for name in self.policies():
            await self.schedule_alarms(self._policies[name], force=True)
            count += 1
        return count

    async def last_alarm_at(self, name: str) -> Optional[datetime]:
        async with self.session_factory() as session:
            last_alarm = await ScheduleStateRepository(session).get_last_alarm(name)
        if last_alarm == NEVER:
            return None
        return from_epoch_millis(last_alarm)
