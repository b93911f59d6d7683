"""Process-wide, reference-counted resource hold."""

import logging
import threading
from typing import Callable, Optional, Protocol, runtime_checkable

from wakegate.engine.errors import ReleaseError, ResourceCreationError
from wakegate.observability.metrics import metrics

logger = logging.getLogger(__name__)


@runtime_checkable
class HoldPrimitive(Protocol):
    """Platform primitive behind a hold (e.g. a sleep/suspend inhibitor)."""

    def acquire(self) -> None:
        ...

    def release(self) -> None:
        ...

    def is_held(self) -> bool:
        ...


HoldFactory = Callable[[str], HoldPrimitive]


class RefCountedHold:
    """
    In-process hold primitive with platform semantics.

    Every ``acquire()`` increments the count and every ``release()`` decrements
    it; the hold is held while the count is positive. Releasing at zero raises
    ``ReleaseError`` (under-locked), which is what callers must tolerate.
    With ``reference_counted=False`` repeated acquires collapse into one.
    """

    def __init__(self, name: str, reference_counted: bool = True):
        self.name = name
        self.reference_counted = reference_counted
        self._count = 0
        self._lock = threading.Lock()

    def acquire(self) -> None:
        with self._lock:
            if self.reference_counted:
                self._count += 1
            else:
                self._count = 1

    def release(self) -> None:
        with self._lock:
            if self._count <= 0:
                raise ReleaseError(self.name)
            self._count -= 1

    def is_held(self) -> bool:
        with self._lock:
            return self._count > 0

    @property
    def count(self) -> int:
        with self._lock:
            return self._count


class ResourceHold:
    """
    Exclusive hold over a scarce process-wide resource.

    The underlying primitive is created lazily on the first ``acquire()`` and
    at most once, even when many producer threads race on first use
    (double-checked locking). The reference count itself lives in the
    primitive. ``release()`` never raises: extra or failed releases are
    logged and suppressed.
    """

    def __init__(self, name: str, factory: Optional[HoldFactory] = None):
        self.name = name
        self._factory: HoldFactory = factory or RefCountedHold
        self._handle: Optional[HoldPrimitive] = None
        self._lock = threading.Lock()

    def _get_handle(self) -> HoldPrimitive:
        handle = self._handle
        if handle is None:
            with self._lock:
                if self._handle is None:
                    try:
                        self._handle = self._factory(self.name)
                    except ResourceCreationError:
                        raise
                    except Exception as e:
                        raise ResourceCreationError(self.name, str(e)) from e
                    logger.info(f"Created resource hold {self.name}")
                handle = self._handle
        return handle

    @property
    def created(self) -> bool:
        return self._handle is not None

    @property
    def reference_count(self) -> Optional[int]:
        """Count reported by the primitive, if it exposes one."""
        handle = self._handle
        if handle is None:
            return 0
        return getattr(handle, "count", None)

    def acquire(self) -> None:
        """Assert the hold. Raises ``ResourceCreationError`` if it cannot be created."""
        self._get_handle().acquire()
        metrics.inc_counter("hold.acquired")
        self._publish()
        logger.debug(f"Acquired resource hold {self.name}")

    def release(self) -> bool:
        """Drop one reference. Returns False when nothing was released."""
        handle = self._handle
        if handle is None:
            logger.warning(f"Release of resource hold {self.name} before first acquire")
            metrics.inc_counter("hold.release.failed")
            return False

        try:
            handle.release()
            self._publish()
        except Exception as e:
            logger.error(f"Exception when releasing resource hold {self.name}: {e}", exc_info=True)
            metrics.inc_counter("hold.release.failed")
            return False

        metrics.inc_counter("hold.released")
        logger.debug(f"Released resource hold {self.name}")
        return True

    def is_held(self) -> bool:
        handle = self._handle
        if handle is None:
            return False
        return handle.is_held()

    def _publish(self) -> None:
        metrics.set_gauge("hold.held", 1 if self.is_held() else 0)
        count = self.reference_count
        if count is not None:
            metrics.set_gauge("hold.references", count)
