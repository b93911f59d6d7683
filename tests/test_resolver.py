"""
Destination resolution tests.
"""

import pytest

from wakegate.engine import HandlerNotFound, HandlerRegistry, ResolutionError, TargetResolver
from wakegate.models import Destination


def noop(payload):
    return None


@pytest.fixture
def registry():
    registry = HandlerRegistry()
    registry.register("mail.sync", noop, actions=["sync"], categories=["mail"])
    registry.register("calendar.sync", noop, actions=["sync"], categories=["calendar"])
    registry.register("thumbnails", noop, actions=["render"])
    return registry


def test_single_candidate_resolves_with_extras_preserved(registry):
    resolver = TargetResolver(registry)
    destination = Destination(action="render", extras={"size": 128, "paths": ["a.png"]})

    resolved = resolver.resolve(destination)

    assert resolved.handler == "thumbnails"
    assert resolved.action == "render"
    assert resolved.extras == {"size": 128, "paths": ["a.png"]}
    assert destination.handler is None, "original descriptor must not be mutated"


def test_categories_narrow_candidates(registry):
    resolver = TargetResolver(registry)

    resolved = resolver.resolve(Destination(action="sync", categories=["mail"]))

    assert resolved.handler == "mail.sync"


def test_ambiguous_destination_fails(registry):
    resolver = TargetResolver(registry)
    destination = Destination(action="sync")

    with pytest.raises(ResolutionError) as exc_info:
        resolver.resolve(destination)

    assert exc_info.value.destination == destination
    assert sorted(exc_info.value.candidates) == ["calendar.sync", "mail.sync"]
    assert exc_info.value.code == "RESOLUTION_FAILED"


def test_no_candidate_fails(registry, caplog):
    resolver = TargetResolver(registry)

    with pytest.raises(ResolutionError) as exc_info:
        resolver.resolve(Destination(action="upload"))

    assert exc_info.value.candidates == []
    assert "upload" in caplog.text


def test_explicit_destination_returned_unchanged(registry):
    resolver = TargetResolver(registry)
    destination = Destination(handler="not-registered-yet", extras={"k": "v"})

    assert resolver.resolve(destination) is destination


def test_registry_lookup_and_decorator():
    registry = HandlerRegistry()

    @registry.handler("reports", actions=["report"])
    def build_report(payload):
        return None

    assert registry.get("reports") is build_report
    assert registry.query(Destination(action="report")) == ["reports"]
    assert registry.names() == ["reports"]

    assert registry.unregister("reports") is True
    with pytest.raises(HandlerNotFound):
        registry.get("reports")
