"""WakeGate engine errors."""

from typing import Any, Sequence


class WakeGateError(Exception):
    """Base error for WakeGate operations."""

    def __init__(self, message: str, code: str = "WAKEGATE_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ResourceCreationError(WakeGateError):
    """The underlying resource handle could not be created."""

    def __init__(self, hold_name: str, reason: str = ""):
        detail = f": {reason}" if reason else ""
        super().__init__(
            f"Could not create resource hold {hold_name}{detail}",
            "RESOURCE_CREATION_FAILED",
        )
        self.hold_name = hold_name
        self.reason = reason


class ReleaseError(WakeGateError):
    """Release of a hold that is not held."""

    def __init__(self, hold_name: str):
        super().__init__(f"Resource hold {hold_name} is under-locked", "RELEASE_FAILED")
        self.hold_name = hold_name


class ResolutionError(WakeGateError):
    """A symbolic destination did not resolve to exactly one handler."""

    def __init__(self, destination: Any, candidates: Sequence[str] = ()):
        self.destination = destination
        self.candidates = list(candidates)
        if self.candidates:
            reason = f"{len(self.candidates)} candidates ({', '.join(self.candidates)})"
        else:
            reason = "no candidates"
        super().__init__(
            f"Couldn't find a single handler for {destination}: {reason}",
            "RESOLUTION_FAILED",
        )


class HandlerNotFound(WakeGateError):
    """No work function is registered under a handler name."""

    def __init__(self, handler: str):
        super().__init__(f"Handler not found: {handler}", "HANDLER_NOT_FOUND")
        self.handler = handler


class WorkFunctionError(WakeGateError):
    """A work function failed while handling a delivered item."""

    def __init__(self, item_id: Any, error: BaseException):
        super().__init__(
            f"Work function failed for item {item_id}: {error}",
            "WORK_FUNCTION_FAILED",
        )
        self.item_id = item_id
        self.error = error


class DispatchUnavailable(WakeGateError):
    """Work was handed off while the dispatch queue is not running."""

    def __init__(self, message: str = "Dispatch queue is not running"):
        super().__init__(message, "DISPATCH_UNAVAILABLE")
