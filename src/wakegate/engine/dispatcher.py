"""Producer-facing entry point for wakeful work."""

import logging
from typing import Any, Optional, Protocol, Union

from wakegate.engine.errors import ResolutionError
from wakegate.engine.hold import ResourceHold
from wakegate.engine.resolver import TargetResolver
from wakegate.models import Destination
from wakegate.observability.metrics import metrics

logger = logging.getLogger(__name__)


class DeliveryChannel(Protocol):
    """Dispatch mechanism that queues items for the executor."""

    def deliver(self, destination: Destination, payload: dict[str, Any]) -> Any:
        ...


class WorkDispatcher:
    """
    Submit work so that the hold is asserted before the producer returns.

    Every successful ``submit()`` performs exactly one ``acquire()``; the
    matching ``release()`` belongs to the executor once the item is handled.
    """

    def __init__(
        self,
        hold: ResourceHold,
        resolver: TargetResolver,
        channel: DeliveryChannel,
    ):
        self.hold = hold
        self.resolver = resolver
        self.channel = channel

    def submit(
        self,
        destination: Union[Destination, str],
        payload: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Acquire the hold, resolve the destination and hand the work off.

        A plain string is taken as a concrete handler name. Resolution
        failures are logged and the original symbolic destination is
        dispatched anyway. If the hand-off itself fails the hold acquired
        here is released again before the error propagates.
        """
        if isinstance(destination, str):
            destination = Destination(handler=destination)

        self.hold.acquire()

        target = destination
        if not destination.is_explicit:
            try:
                target = self.resolver.resolve(destination)
            except ResolutionError as e:
                logger.warning(f"Dispatching unresolved destination {destination}: {e.message}")
                metrics.inc_counter("work.resolution_fallback")

        try:
            self.channel.deliver(target, dict(payload or {}))
        except Exception:
            logger.error(f"Hand-off failed for {target}, releasing hold", exc_info=True)
            self.hold.release()
            raise

        metrics.inc_counter("work.submitted")
