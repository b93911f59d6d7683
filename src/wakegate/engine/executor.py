"""Single-consumer executor that runs work under the resource hold."""

import asyncio
import inspect
import logging

from wakegate.engine.errors import WorkFunctionError
from wakegate.engine.hold import ResourceHold
from wakegate.engine.resolver import HandlerRegistry, TargetResolver, WorkFunction
from wakegate.models import WorkItem
from wakegate.observability.metrics import metrics

logger = logging.getLogger(__name__)


class WorkExecutor:
    """
    Handle delivered work items one at a time.

    The dispatch mechanism calls ``handle()`` sequentially. For every item the
    hold is re-asserted when the item is a redelivery or the hold is not held
    (the producer's acquire may have been lost), the work function runs, and
    the hold is released on every exit path. Across all deliveries of one
    logical item acquires and releases balance.
    """

    def __init__(
        self,
        hold: ResourceHold,
        registry: HandlerRegistry,
        resolver: TargetResolver,
        propagate_errors: bool = True,
    ):
        self.hold = hold
        self.registry = registry
        self.resolver = resolver
        self.propagate_errors = propagate_errors

    def _work_function(self, item: WorkItem) -> WorkFunction:
        destination = self.resolver.resolve(item.destination)
        return self.registry.get(destination.handler)

    async def _invoke(self, work_fn: WorkFunction, item: WorkItem) -> None:
        if inspect.iscoroutinefunction(work_fn):
            await work_fn(item.payload)
        else:
            # Plain functions may block for a long time; keep the loop free.
            work = asyncio.ensure_future(asyncio.to_thread(work_fn, item.payload))
            try:
                await asyncio.shield(work)
            except asyncio.CancelledError:
                # The thread cannot be interrupted; the hold stays until it returns
                await asyncio.wait({work})
                raise

    async def handle(self, item: WorkItem) -> None:
        """
        Run one delivered item.

        Raises:
            WorkFunctionError: the work (or its handler lookup) failed and
                ``propagate_errors`` is set, so the item gets redelivered.
        """
        if item.redelivered or not self.hold.is_held():
            self.hold.acquire()

        try:
            with metrics.timed("work.duration_ms"):
                work_fn = self._work_function(item)
                await self._invoke(work_fn, item)
            metrics.inc_counter("work.completed")
        except Exception as e:
            metrics.inc_counter("work.failed")
            logger.warning(
                f"Work item {item.item_id} failed on attempt {item.attempt}: {e}",
                exc_info=True,
            )
            if self.propagate_errors:
                raise WorkFunctionError(item.item_id, e) from e
        finally:
            if self.hold.is_held():
                self.hold.release()
