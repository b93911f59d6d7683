"""WakeGate - wakeful background work under a process-wide resource hold."""

from wakegate.engine import (
    AlarmPolicy,
    AlarmScheduler,
    IntervalAlarmPolicy,
    ResourceHold,
    TargetResolver,
    WorkDispatcher,
    WorkExecutor,
)
from wakegate.models import Destination, WorkItem
from wakegate.runtime import WakeGate

__version__ = "0.1.0"

__all__ = [
    "AlarmPolicy",
    "AlarmScheduler",
    "Destination",
    "IntervalAlarmPolicy",
    "ResourceHold",
    "TargetResolver",
    "WakeGate",
    "WorkDispatcher",
    "WorkExecutor",
    "WorkItem",
]
