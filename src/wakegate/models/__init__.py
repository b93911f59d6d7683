"""WakeGate data models."""

from wakegate.models.alarm import AlarmTarget, TriggerSpec
from wakegate.models.destination import Destination
from wakegate.models.work import WorkItem

__all__ = [
    "AlarmTarget",
    "Destination",
    "TriggerSpec",
    "WorkItem",
]
