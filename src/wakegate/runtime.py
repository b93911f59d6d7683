"""WakeGate runtime - the single owner of the process-wide hold."""

import logging
from typing import Any, Iterable, Optional, Union

from wakegate.config import Settings, settings as default_settings
from wakegate.db.base import get_session
from wakegate.engine import (
    AlarmPolicy,
    AlarmScheduler,
    HandlerRegistry,
    RefCountedHold,
    ResourceHold,
    TargetResolver,
    WorkDispatcher,
    WorkExecutor,
)
from wakegate.engine.alarms import Clock, SessionFactory
from wakegate.engine.hold import HoldFactory
from wakegate.engine.resolver import WorkFunction
from wakegate.models import Destination, WorkItem
from wakegate.tasks import AsyncioTimerFacility, DispatchQueue
from wakegate.utils.time import epoch_millis

logger = logging.getLogger("wakegate")


class WakeGate:
    """
    Construct once at process start and pass around by reference.

    Owns exactly one ``ResourceHold`` shared by the dispatcher and the
    executor, plus the dispatch queue, timer facility and alarm scheduler.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        hold_factory: Optional[HoldFactory] = None,
        session_factory: SessionFactory = get_session,
        clock: Clock = epoch_millis,
    ):
        self.settings = config or default_settings

        if hold_factory is None:
            reference_counted = self.settings.hold_reference_counted

            def hold_factory(name: str) -> RefCountedHold:
                return RefCountedHold(name, reference_counted=reference_counted)

        self.hold = ResourceHold(self.settings.hold_name, factory=hold_factory)
        self.registry = HandlerRegistry()
        self.resolver = TargetResolver(self.registry)
        self.queue = DispatchQueue(
            max_attempts=self.settings.dispatch_max_attempts,
            retry_backoff_seconds=self.settings.dispatch_retry_backoff_seconds,
            max_backoff_seconds=self.settings.dispatch_max_backoff_seconds,
            poll_interval_seconds=self.settings.dispatch_poll_interval_seconds,
            stop_timeout_seconds=self.settings.dispatch_stop_timeout_seconds,
        )
        self.dispatcher = WorkDispatcher(self.hold, self.resolver, self.queue)
        self.executor = WorkExecutor(
            self.hold,
            self.registry,
            self.resolver,
            propagate_errors=self.settings.propagate_work_errors,
        )
        self.queue.bind(self.executor.handle, on_abandon=self._release_abandoned)
        self.timer = AsyncioTimerFacility()
        self.alarms = AlarmScheduler(
            self.timer,
            self.dispatcher,
            session_factory=session_factory,
            clock=clock,
        )

    def register(
        self,
        name: str,
        work_fn: WorkFunction,
        actions: Iterable[str] = (),
        categories: Iterable[str] = (),
    ) -> None:
        self.registry.register(name, work_fn, actions=actions, categories=categories)

    def handler(self, name: str, actions: Iterable[str] = (), categories: Iterable[str] = ()):
        """Decorator registering a work function: ``@gate.handler("sync")``."""
        return self.registry.handler(name, actions=actions, categories=categories)

    def add_alarm(self, policy: AlarmPolicy) -> None:
        self.alarms.register(policy)

    def submit(
        self,
        destination: Union[Destination, str],
        payload: Optional[dict[str, Any]] = None,
    ) -> None:
        self.dispatcher.submit(destination, payload)

    async def start(self) -> None:
        await self.queue.start()
        logger.info(f"WakeGate started (hold: {self.hold.name})")

        if self.settings.reschedule_on_startup:
            count = await self.alarms.reschedule_all()
            if count:
                logger.info(f"Re-armed {count} alarms on startup")

    def _release_abandoned(self, item: WorkItem) -> None:
        # Never-delivered items still own the reference taken by submit()
        if not item.redelivered:
            self.hold.release()

    async def stop(self) -> None:
        await self.timer.aclose()
        abandoned = await self.queue.stop()

        for item in abandoned:
            self._release_abandoned(item)

        logger.info("WakeGate stopped")
