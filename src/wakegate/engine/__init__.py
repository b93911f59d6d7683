"""WakeGate engine - hold discipline, dispatch and alarm scheduling."""

from wakegate.engine.alarms import AlarmPolicy, AlarmScheduler, IntervalAlarmPolicy
from wakegate.engine.dispatcher import WorkDispatcher
from wakegate.engine.errors import (
    DispatchUnavailable,
    HandlerNotFound,
    ReleaseError,
    ResolutionError,
    ResourceCreationError,
    WakeGateError,
    WorkFunctionError,
)
from wakegate.engine.executor import WorkExecutor
from wakegate.engine.hold import RefCountedHold, ResourceHold
from wakegate.engine.resolver import HandlerRegistry, TargetResolver

__all__ = [
    "AlarmPolicy",
    "AlarmScheduler",
    "DispatchUnavailable",
    "HandlerNotFound",
    "HandlerRegistry",
    "IntervalAlarmPolicy",
    "RefCountedHold",
    "ReleaseError",
    "ResolutionError",
    "ResourceCreationError",
    "ResourceHold",
    "TargetResolver",
    "WakeGateError",
    "WorkDispatcher",
    "WorkExecutor",
    "WorkFunctionError",
]
