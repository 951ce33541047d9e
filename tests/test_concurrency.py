import threading
import time

import pytest

from turno_queue.errors import DuplicateNumberError
from turno_queue.sqlite_store import SqliteTicketStore
from turno_queue.state_machine import QueueStateMachine
from turno_queue.ticket import NewTicket, TicketState


class SlowReads:
    """Store wrapper that widens the gap between numbering and insert."""

    def __init__(self, inner, delay=0.01):
        self._inner = inner
        self._delay = delay

    def find_by_day_and_state(self, day, states=None):
        rows = self._inner.find_by_day_and_state(day, states)
        time.sleep(self._delay)
        return rows

    def __getattr__(self, name):
        return getattr(self._inner, name)


def _create_concurrently(machine, fields, n):
    results, errors = [], []
    barrier = threading.Barrier(n)

    def worker(i):
        barrier.wait()
        try:
            results.append(machine.create_ticket(**dict(fields, patient=f"P{i}")))
        except Exception as e:  # collected and asserted on below
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results, errors


def test_concurrent_creations_get_unique_contiguous_numbers(store, clock, fields):
    machine = QueueStateMachine(store=SlowReads(store), clock=clock)
    results, errors = _create_concurrently(machine, fields, 8)

    assert errors == []
    numbers = sorted(int(t.number) for t in results)
    assert numbers == list(range(1, 9))

    # Creation order and numbering order agree.
    day_tickets = store.find_by_day_and_state(clock().date())
    assert [t.number for t in day_tickets] == [str(i) for i in range(1, 9)]


def test_two_concurrent_creations_never_both_get_one(store, clock, fields):
    machine = QueueStateMachine(store=SlowReads(store), clock=clock)
    results, errors = _create_concurrently(machine, fields, 2)
    assert errors == []
    assert sorted(t.number for t in results) == ["1", "2"]


class CompetingWriter:
    """Store wrapper where another process grabs the number we just computed."""

    def __init__(self, inner, steals=1):
        self._inner = inner
        self.steals = steals

    def create(self, new):
        if self.steals:
            self.steals -= 1
            self._inner.create(
                NewTicket(draft=new.draft, number=new.number, day=new.day, created_at=new.created_at)
            )
        return self._inner.create(new)

    def __getattr__(self, name):
        return getattr(self._inner, name)


def test_number_conflict_is_retried(store, clock, fields):
    machine = QueueStateMachine(store=CompetingWriter(store), clock=clock)
    t = machine.create_ticket(**fields)
    assert t.number == "2"
    assert t.state is TicketState.WAITING


def test_number_conflict_gives_up_after_retries(store, clock, fields):
    machine = QueueStateMachine(store=CompetingWriter(store, steals=10), clock=clock, create_retries=2)
    with pytest.raises(DuplicateNumberError):
        machine.create_ticket(**fields)


def test_concurrent_transitions_apply_once(machine, fields):
    t = machine.create_ticket(**fields)
    outcomes = []
    barrier = threading.Barrier(6)

    def worker():
        barrier.wait()
        try:
            machine.advance(t.id, "atencion")
            outcomes.append("ok")
        except Exception as e:  # collected and asserted on below
            outcomes.append(type(e).__name__)

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for th in threads:
        th.start()
    for th in threads:
        th.join()

    assert outcomes.count("ok") == 1
    assert outcomes.count("InvalidTransitionError") == 5


def test_concurrent_creations_on_sqlite_get_unique_contiguous_numbers(tmp_path, clock, fields):
    db = SqliteTicketStore.open(str(tmp_path / "turnos.db"), clock=clock)
    try:
        machine = QueueStateMachine(store=SlowReads(db), clock=clock)
        results, errors = _create_concurrently(machine, fields, 8)

        assert errors == []
        assert sorted(int(t.number) for t in results) == list(range(1, 9))

        day_tickets = db.find_by_day_and_state(clock().date())
        assert [t.number for t in day_tickets] == [str(i) for i in range(1, 9)]
    finally:
        db.close()
