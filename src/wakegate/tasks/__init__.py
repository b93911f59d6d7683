"""WakeGate background machinery: dispatch queue and timer facility."""

from wakegate.tasks.dispatch import DispatchQueue
from wakegate.tasks.timer import AsyncioTimerFacility

__all__ = ["AsyncioTimerFacility", "DispatchQueue"]
