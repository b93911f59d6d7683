"""Destination model - who should handle a work item."""

from typing import Any, Optional

from pydantic import BaseModel, Field


class Destination(BaseModel):
    """
    Symbolic or concrete work destination.

    A symbolic destination names an ``action`` (plus optional ``categories``)
    and leaves ``handler`` unset; it must be resolved against the handler
    registry before a concrete handler is known. A concrete destination has
    ``handler`` set and needs no resolution.
    """

    action: Optional[str] = Field(None, description="Symbolic action, e.g. 'sync.mail'")
    categories: list[str] = Field(default_factory=list, description="Required handler categories")
    handler: Optional[str] = Field(None, description="Concrete handler name")
    extras: dict[str, Any] = Field(default_factory=dict, description="Opaque extras carried with the item")

    @property
    def is_explicit(self) -> bool:
        """True once the destination names a concrete handler."""
        return self.handler is not None

    def with_handler(self, handler: str) -> "Destination":
        """Return a copy bound to ``handler``; everything else is preserved."""
        return self.model_copy(update={"handler": handler}, deep=True)

    def __str__(self) -> str:
        if self.is_explicit:
            return f"Destination(handler={self.handler!r})"
        return f"Destination(action={self.action!r}, categories={self.categories!r})"
