"""Asyncio-backed timer facility for alarm targets."""

import asyncio
import inspect
import logging
from typing import Optional

from wakegate.models import AlarmTarget, TriggerSpec
from wakegate.observability.metrics import metrics

logger = logging.getLogger("wakegate.timer")


class AsyncioTimerFacility:
    """
    Arm and cancel callbacks on the running event loop.

    One pending arm per target name: arming a target again replaces the
    earlier arm. Repeating triggers re-arm themselves before the callback
    runs. Callbacks returning an awaitable are run as tasks.
    """

    def __init__(self) -> None:
        self._handles: dict[str, asyncio.TimerHandle] = {}
        self._inflight: set[asyncio.Future] = set()

    def arm(self, trigger: TriggerSpec, target: AlarmTarget) -> None:
        loop = asyncio.get_running_loop()
        self.cancel(target)
        self._handles[target.name] = loop.call_later(
            trigger.delay_seconds, self._fire, trigger, target
        )
        logger.debug(
            f"Armed {target.name} in {trigger.delay_seconds}s "
            f"(interval: {trigger.interval_seconds})"
        )

    def cancel(self, target: AlarmTarget) -> bool:
        """Cancel the pending arm for ``target``. Returns whether one existed."""
        handle = self._handles.pop(target.name, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def is_pending(self, name: str) -> bool:
        return name in self._handles

    def pending(self) -> list[str]:
        return sorted(self._handles)

    def cancel_all(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()

    def _fire(self, trigger: TriggerSpec, target: AlarmTarget) -> None:
        self._handles.pop(target.name, None)
        if trigger.repeating:
            loop = asyncio.get_running_loop()
            self._handles[target.name] = loop.call_later(
                trigger.interval_seconds, self._fire, trigger, target
            )

        metrics.inc_counter("timer.fired")
        if target.callback is None:
            return

        try:
            result = target.callback()
        except Exception as e:
            logger.error(f"Alarm callback for {target.name} failed: {e}", exc_info=True)
            return

        if inspect.isawaitable(result):
            future = asyncio.ensure_future(result)
            self._inflight.add(future)
            future.add_done_callback(self._on_done(target.name))

    def _on_done(self, name: str):
        def callback(future: asyncio.Future) -> None:
            self._inflight.discard(future)
            if future.cancelled():
                return
            error: Optional[BaseException] = future.exception()
            if error is not None:
                logger.error(f"Alarm callback for {name} failed: {error}", exc_info=error)

        return callback

    async def aclose(self) -> None:
        """Cancel pending arms and wait for callbacks already running."""
        self.cancel_all()
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)
