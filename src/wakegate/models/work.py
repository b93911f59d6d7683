"""Work item model - payload in transit to the executor."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from wakegate.models.destination import Destination
from wakegate.utils.time import utc_now


class WorkItem(BaseModel):
    """A unit of work as delivered by the dispatch mechanism."""

    item_id: UUID = Field(default_factory=uuid4)
    destination: Destination
    payload: dict[str, Any] = Field(default_factory=dict)
    redelivered: bool = False  # set by the dispatch mechanism, never inferred
    attempt: int = 0
    created_at: datetime = Field(default_factory=utc_now)

    def redelivery(self) -> "WorkItem":
        """Return the same logical item flagged for redelivery."""
        return self.model_copy(update={"redelivered": True, "attempt": self.attempt + 1})
