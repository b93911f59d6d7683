"""Alarm models - trigger specs and callback targets for the timer facility."""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional


@dataclass(frozen=True)
class TriggerSpec:
    """When to fire: after ``delay_seconds``, then every ``interval_seconds`` if set."""

    delay_seconds: float = 0.0
    interval_seconds: Optional[float] = None

    def __post_init__(self) -> None:
        if self.delay_seconds < 0:
            raise ValueError(f"delay_seconds must not be negative, got {self.delay_seconds}")
        if self.interval_seconds is not None and self.interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {self.interval_seconds}")

    @property
    def repeating(self) -> bool:
        return self.interval_seconds is not None


@dataclass(frozen=True)
class AlarmTarget:
    """
    Callback registration for one named periodic task.

    Targets compare by name only, so a target rebuilt from the name alone
    cancels the pending arm of the original.
    """

    name: str
    callback: Optional[Callable[[], Any]] = field(default=None, compare=False, repr=False)
