"""
Work dispatcher tests: hold asserted before hand-off, one acquire per submit.
"""

import threading

import pytest

from wakegate.engine import (
    DispatchUnavailable,
    HandlerRegistry,
    ResourceHold,
    TargetResolver,
    WorkDispatcher,
)
from wakegate.models import Destination
from wakegate.observability.metrics import metrics


class RecordingChannel:
    def __init__(self, hold: ResourceHold, fail: bool = False):
        self.hold = hold
        self.fail = fail
        self.delivered = []
        self.held_at_delivery = []
        self._lock = threading.Lock()

    def deliver(self, destination, payload):
        if self.fail:
            raise DispatchUnavailable()
        with self._lock:
            self.held_at_delivery.append(self.hold.is_held())
            self.delivered.append((destination, payload))


@pytest.fixture
def registry():
    registry = HandlerRegistry()
    registry.register("mail.sync", lambda payload: None, actions=["sync"])
    return registry


@pytest.fixture
def hold(hold_spy):
    return ResourceHold("test.hold", factory=hold_spy)


def test_hold_asserted_before_handoff(hold, hold_spy, registry):
    channel = RecordingChannel(hold)
    dispatcher = WorkDispatcher(hold, TargetResolver(registry), channel)

    dispatcher.submit(Destination(action="sync"), {"account": 7})

    assert channel.held_at_delivery == [True]
    destination, payload = channel.delivered[0]
    assert destination.handler == "mail.sync"
    assert payload == {"account": 7}
    assert hold_spy.acquires == 1


def test_unresolved_destination_still_dispatched(hold, hold_spy, registry):
    """Resolution failure is advisory on the submit path."""
    channel = RecordingChannel(hold)
    dispatcher = WorkDispatcher(hold, TargetResolver(registry), channel)
    symbolic = Destination(action="upload")

    dispatcher.submit(symbolic, {"file": "x"})

    assert channel.delivered == [(symbolic, {"file": "x"})]
    assert hold.is_held() is True
    assert metrics.counter("work.resolution_fallback") == 1


def test_string_destination_is_concrete_handler(hold, registry):
    channel = RecordingChannel(hold)
    dispatcher = WorkDispatcher(hold, TargetResolver(registry), channel)

    dispatcher.submit("mail.sync")

    destination, payload = channel.delivered[0]
    assert destination.handler == "mail.sync"
    assert payload == {}


def test_failed_handoff_releases_hold(hold, hold_spy, registry):
    channel = RecordingChannel(hold, fail=True)
    dispatcher = WorkDispatcher(hold, TargetResolver(registry), channel)

    with pytest.raises(DispatchUnavailable):
        dispatcher.submit("mail.sync", {"n": 1})

    assert hold.is_held() is False
    assert hold_spy.acquires == 1
    assert hold_spy.releases == 1


def test_concurrent_submits_acquire_once_each(hold, hold_spy, registry):
    channel = RecordingChannel(hold)
    dispatcher = WorkDispatcher(hold, TargetResolver(registry), channel)
    barrier = threading.Barrier(8)

    def producer(index):
        barrier.wait()
        for n in range(25):
            dispatcher.submit("mail.sync", {"producer": index, "n": n})

    threads = [threading.Thread(target=producer, args=(i,)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(channel.delivered) == 200
    assert hold_spy.acquires == 200
    assert hold.reference_count == 200
    assert all(channel.held_at_delivery)
    assert metrics.counter("work.submitted") == 200
