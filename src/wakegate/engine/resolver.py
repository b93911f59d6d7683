"""Handler registry and symbolic-to-concrete destination resolution."""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Protocol, Union

from wakegate.engine.errors import HandlerNotFound, ResolutionError
from wakegate.models import Destination

logger = logging.getLogger(__name__)

WorkFunction = Callable[[dict[str, Any]], Union[None, Awaitable[None]]]


class HandlerDirectory(Protocol):
    """Directory of concrete handlers able to service a destination."""

    def query(self, destination: Destination) -> list[str]:
        ...


@dataclass
class HandlerRegistration:
    name: str
    work_fn: WorkFunction
    actions: frozenset[str] = field(default_factory=frozenset)
    categories: frozenset[str] = field(default_factory=frozenset)

    def matches(self, destination: Destination) -> bool:
        if destination.action not in self.actions:
            return False
        return set(destination.categories).issubset(self.categories)


class HandlerRegistry:
    """Registered work functions, keyed by handler name."""

    def __init__(self) -> None:
        self._handlers: dict[str, HandlerRegistration] = {}
        self._lock = threading.Lock()

    def register(
        self,
        name: str,
        work_fn: WorkFunction,
        actions: Iterable[str] = (),
        categories: Iterable[str] = (),
    ) -> HandlerRegistration:
        """Register ``work_fn`` as handler ``name``; replaces an earlier registration."""
        registration = HandlerRegistration(
            name=name,
            work_fn=work_fn,
            actions=frozenset(actions),
            categories=frozenset(categories),
        )
        with self._lock:
            if name in self._handlers:
                logger.warning(f"Replacing registered handler {name}")
            self._handlers[name] = registration
        return registration

    def handler(
        self,
        name: str,
        actions: Iterable[str] = (),
        categories: Iterable[str] = (),
    ) -> Callable[[WorkFunction], WorkFunction]:
        """Decorator form of ``register``."""

        def decorator(work_fn: WorkFunction) -> WorkFunction:
            self.register(name, work_fn, actions=actions, categories=categories)
            return work_fn

        return decorator

    def unregister(self, name: str) -> bool:
        with self._lock:
            return self._handlers.pop(name, None) is not None

    def get(self, name: str) -> WorkFunction:
        with self._lock:
            registration = self._handlers.get(name)
        if registration is None:
            raise HandlerNotFound(name)
        return registration.work_fn

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._handlers)

    def query(self, destination: Destination) -> list[str]:
        """Return every handler able to service a symbolic destination."""
        with self._lock:
            registrations = list(self._handlers.values())
        return [r.name for r in registrations if r.matches(destination)]


class TargetResolver:
    """Turn a symbolic destination into exactly one concrete destination."""

    def __init__(self, directory: HandlerDirectory):
        self.directory = directory

    def resolve(self, destination: Destination) -> Destination:
        """
        Resolve ``destination`` against the handler directory.

        Concrete destinations are returned unchanged. A symbolic destination
        must match exactly one handler; the result is a copy bound to that
        handler with action, categories and extras preserved.

        Raises:
            ResolutionError: zero or several handlers matched. No ordering is
                assumed among several candidates.
        """
        if destination.is_explicit:
            return destination

        candidates = list(self.directory.query(destination) or [])
        if len(candidates) != 1:
            logger.error(
                f"Couldn't find a single match for {destination} "
                f"(candidates: {candidates}). Make sure the handler is registered "
                f"for this action."
            )
            raise ResolutionError(destination, candidates)

        return destination.with_handler(candidates[0])
