import threading
from datetime import datetime, timedelta

import pytest

from turno_queue.broadcast import BroadcastCoordinator
from turno_queue.registry import SubscriberRegistry
from turno_queue.state_machine import QueueStateMachine
from turno_queue.store import InMemoryTicketStore


class FakeClock:
    """Deterministic clock; every reading moves time forward by one millisecond."""

    def __init__(self, start: datetime) -> None:
        self.now = start
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            self.now += timedelta(milliseconds=1)
            return self.now

    def jump(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


FIELDS = {
    "reason": "Control de presión",
    "priority": "Medium",
    "room": "Consultorio 3",
    "practitioner": "Dra. Rojas",
    "patient": "Juan Pérez",
}


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 5, 6, 9, 0, 0))


@pytest.fixture
def make_clock():
    return FakeClock


@pytest.fixture
def store(clock):
    return InMemoryTicketStore(clock=clock)


@pytest.fixture
def registry():
    return SubscriberRegistry()


@pytest.fixture
def coordinator(store, registry, clock):
    return BroadcastCoordinator(store=store, registry=registry, clock=clock)


@pytest.fixture
def machine(store, coordinator, clock):
    return QueueStateMachine(store=store, coordinator=coordinator, clock=clock)


@pytest.fixture
def fields():
    return dict(FIELDS)
