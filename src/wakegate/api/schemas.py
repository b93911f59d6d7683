"""API request/response schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str


class HoldResponse(BaseModel):
    """Resource hold status."""

    name: str
    held: bool
    reference_count: Optional[int] = Field(None, description="Count reported by the primitive")


class SubmitWorkRequest(BaseModel):
    """Submit work request. Name a concrete handler or a symbolic action."""

    handler: Optional[str] = Field(None, description="Concrete handler name")
    action: Optional[str] = Field(None, description="Symbolic action to resolve")
    categories: list[str] = Field(default_factory=list, description="Required handler categories")
    extras: dict[str, Any] = Field(default_factory=dict, description="Opaque extras")
    payload: dict[str, Any] = Field(default_factory=dict, description="Work payload")

    @model_validator(mode="after")
    def check_destination(self) -> "SubmitWorkRequest":
        if not self.handler and not self.action:
            raise ValueError("Either handler or action is required")
        return self


class SubmitWorkResponse(BaseModel):
    """Submit work response."""

    accepted: bool
    held: bool


class AlarmStatusResponse(BaseModel):
    """Alarm status for a named periodic task."""

    name: str
    registered: bool
    pending: bool
    last_alarm_at: Optional[datetime] = None


class ScheduleAlarmResponse(BaseModel):
    """Schedule alarm response."""

    name: str
    armed: bool
