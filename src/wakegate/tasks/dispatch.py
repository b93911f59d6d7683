"""In-process dispatch queue with sequential delivery and redelivery."""

import asyncio
import logging
import threading
from typing import Any, Awaitable, Callable, Optional

from wakegate.config import settings
from wakegate.engine.errors import DispatchUnavailable
from wakegate.models import Destination, WorkItem
from wakegate.observability.metrics import metrics

logger = logging.getLogger("wakegate.dispatch")

ItemHandler = Callable[[WorkItem], Awaitable[None]]
AbandonHandler = Callable[[WorkItem], None]


class DispatchQueue:
    """
    Queue work items and deliver them one at a time to a single handler.

    This is the dispatch mechanism the executor is plugged into:
    - ``deliver()`` may be called from any thread
    - a single consumer coroutine hands items to the handler sequentially
    - an item whose handler raised is redelivered with ``redelivered=True``
      after an exponential backoff, until ``max_attempts`` deliveries have
      been made; then it is dead-lettered
    - an item whose handler returned normally is complete

    A delivery in progress is never interrupted, not even by ``stop()``.
    """

    def __init__(
        self,
        handler: Optional[ItemHandler] = None,
        max_attempts: Optional[int] = None,
        retry_backoff_seconds: Optional[float] = None,
        max_backoff_seconds: Optional[float] = None,
        poll_interval_seconds: Optional[float] = None,
        stop_timeout_seconds: Optional[float] = None,
    ):
        self._handler = handler
        self._on_abandon: Optional[AbandonHandler] = None
        self.max_attempts = max_attempts or settings.dispatch_max_attempts
        self.retry_backoff_seconds = (
            settings.dispatch_retry_backoff_seconds
            if retry_backoff_seconds is None
            else retry_backoff_seconds
        )
        self.max_backoff_seconds = (
            settings.dispatch_max_backoff_seconds
            if max_backoff_seconds is None
            else max_backoff_seconds
        )
        self.poll_interval_seconds = (
            settings.dispatch_poll_interval_seconds
            if poll_interval_seconds is None
            else poll_interval_seconds
        )
        self.stop_timeout_seconds = (
            settings.dispatch_stop_timeout_seconds
            if stop_timeout_seconds is None
            else stop_timeout_seconds
        )

        self.dead_letters: list[WorkItem] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue[WorkItem]] = None
        self._task: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Future] = None
        self._shutdown: Optional[asyncio.Event] = None
        self._idle: Optional[asyncio.Event] = None
        self._redeliveries: dict[Any, tuple[asyncio.TimerHandle, WorkItem]] = {}

        # Guards _accepting and _pending, which producer threads touch
        self._lock = threading.Lock()
        self._accepting = False
        self._pending = 0

    def bind(self, handler: ItemHandler, on_abandon: Optional[AbandonHandler] = None) -> None:
        """
        Set the handling routine items are delivered to.

        ``on_abandon`` receives items that reached the queue after it stopped
        and will never be delivered.
        """
        self._handler = handler
        self._on_abandon = on_abandon

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pending(self) -> int:
        """Items accepted and not yet completed or dead-lettered."""
        with self._lock:
            return self._pending

    async def start(self) -> None:
        """Start the delivery loop on the running event loop."""
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._shutdown = asyncio.Event()
        self._idle = asyncio.Event()
        self._idle.set()
        with self._lock:
            self._pending = 0
            self._accepting = True
        self._task = asyncio.create_task(self._run())

    def deliver(self, destination: Destination, payload: dict[str, Any]) -> WorkItem:
        """
        Queue a new work item. Safe to call from any thread.

        The item counts as pending before this returns, so ``join()`` waits
        for it even if it is still on its way to the loop thread.
        """
        item = WorkItem(destination=destination, payload=payload)
        try:
            on_loop = asyncio.get_running_loop() is self._loop
        except RuntimeError:
            on_loop = False

        with self._lock:
            if not self._accepting or self._loop is None:
                raise DispatchUnavailable()
            self._pending += 1
            if not on_loop:
                try:
                    self._loop.call_soon_threadsafe(self._accept, item)
                except RuntimeError as e:
                    self._pending -= 1
                    raise DispatchUnavailable(f"Dispatch loop is closed: {e}") from e
                return item

        self._accept(item)
        return item

    def _accept(self, item: WorkItem) -> None:
        if self._task is None:
            # stop() already drained the queue
            logger.warning(f"Item {item.item_id} arrived after the dispatch queue stopped")
            metrics.inc_counter("dispatch.abandoned")
            if self._on_abandon is not None:
                self._on_abandon(item)
            return

        self._idle.clear()
        self._queue.put_nowait(item)
        metrics.inc_counter("dispatch.accepted")
        metrics.set_gauge("dispatch.pending", self.pending)

    def _requeue(self, item: WorkItem) -> None:
        self._redeliveries.pop(item.item_id, None)
        self._queue.put_nowait(item)

    def _settle(self) -> None:
        with self._lock:
            self._pending -= 1
            if self._pending <= 0:
                self._pending = 0
            pending = self._pending
        if pending == 0:
            self._idle.set()
        metrics.set_gauge("dispatch.pending", pending)

    def _backoff(self, attempt: int) -> float:
        # base * 2^attempt, capped at max
        return min(self.retry_backoff_seconds * (2 ** attempt), self.max_backoff_seconds)

    async def _run(self) -> None:
        logger.info(f"Dispatch loop started (max attempts: {self.max_attempts})")

        while not self._shutdown.is_set():
            try:
                item = await asyncio.wait_for(
                    self._queue.get(),
                    timeout=self.poll_interval_seconds,
                )
            except asyncio.TimeoutError:
                continue

            self._inflight = asyncio.ensure_future(self._dispatch(item))
            # Cancelling the loop must not cancel the delivery in progress
            await asyncio.shield(self._inflight)
            self._inflight = None

        logger.info("Dispatch loop stopped")

    async def _dispatch(self, item: WorkItem) -> None:
        metrics.inc_counter("dispatch.delivered")
        try:
            if self._handler is None:
                raise DispatchUnavailable("No handler bound to the dispatch queue")
            await self._handler(item)
        except Exception as e:
            self._on_failure(item, e)
        else:
            self._settle()
        finally:
            self._queue.task_done()

    def _on_failure(self, item: WorkItem, error: Exception) -> None:
        if item.attempt + 1 < self.max_attempts:
            backoff = self._backoff(item.attempt)
            redelivery = item.redelivery()
            handle = self._loop.call_later(backoff, self._requeue, redelivery)
            self._redeliveries[item.item_id] = (handle, redelivery)
            metrics.inc_counter("dispatch.redelivery_scheduled")
            logger.warning(
                f"Item {item.item_id} failed (attempt {item.attempt + 1}/{self.max_attempts}), "
                f"redelivering in {backoff:.2f}s: {error}"
            )
            return

        self.dead_letters.append(item)
        metrics.inc_counter("dispatch.dead_lettered")
        logger.error(
            f"Item {item.item_id} failed after {item.attempt + 1} attempts, giving up: {error}"
        )
        self._settle()

    async def join(self, timeout: Optional[float] = None) -> None:
        """Wait until every accepted item is complete or dead-lettered."""
        if self._idle is None:
            return
        await asyncio.wait_for(self._wait_idle(), timeout=timeout)

    async def _wait_idle(self) -> None:
        while True:
            await self._idle.wait()
            if self.pending == 0:
                return
            # Counted by deliver() on another thread; _accept is already scheduled
            await asyncio.sleep(0)

    async def stop(self, timeout: Optional[float] = None) -> list[WorkItem]:
        """
        Stop the delivery loop.

        New deliveries are refused at once. The loop gets ``timeout`` seconds
        to exit on its own before it is cancelled; an item being delivered at
        that point still runs to completion. Returns the items that were never
        handled to completion: queued items plus items waiting for redelivery.
        """
        if timeout is None:
            timeout = self.stop_timeout_seconds

        with self._lock:
            self._accepting = False

        if self._shutdown:
            self._shutdown.set()

        if self._task:
            done, _ = await asyncio.wait({self._task}, timeout=timeout)
            if not done:
                logger.warning("Dispatch loop did not stop gracefully, cancelling")
                self._task.cancel()
                await asyncio.wait({self._task})

        inflight = self._inflight
        if inflight is not None and not inflight.done():
            logger.info("Waiting for the item in delivery to finish")
            await asyncio.wait({inflight})
        self._inflight = None

        abandoned: list[WorkItem] = []
        if self._queue is not None:
            while not self._queue.empty():
                abandoned.append(self._queue.get_nowait())

        for handle, redelivery in self._redeliveries.values():
            handle.cancel()
            abandoned.append(redelivery)
        self._redeliveries.clear()

        if abandoned:
            metrics.inc_counter("dispatch.abandoned", len(abandoned))
            logger.warning(f"Dispatch queue stopped with {len(abandoned)} unfinished items")

        self._task = None
        self._shutdown = None
        with self._lock:
            self._pending = 0
        if self._idle is not None:
            self._idle.set()
        return abandoned
