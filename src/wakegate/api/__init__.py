"""WakeGate REST API."""

from wakegate.api.router import router

__all__ = ["router"]
