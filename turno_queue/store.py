from __future__ import annotations

# Ticket store contract + in-memory implementation.
#
# The queue core only needs a handful of operations from persistence:
# - create a record (store assigns the id; timestamps come from NewTicket)
# - list one day's tickets in creation order, optionally filtered by state
# - apply a state change by id, optionally only if the current state matches
#
# `InMemoryTicketStore` is used by the tests and by `serve --db :memory:`.
# The SQLite-backed store lives in `sqlite_store.py`.

import itertools
import threading
import uuid
from dataclasses import replace
from datetime import date, datetime
from typing import Iterable, Protocol

from .days import Clock, in_day
from .errors import DuplicateNumberError
from .ticket import NewTicket, Ticket, TicketState


class TicketStore(Protocol):
    def create(self, new: NewTicket) -> Ticket: ...

    def get(self, ticket_id: str) -> Ticket | None: ...

    def find_by_day_and_state(
        self, day: date, states: Iterable[TicketState] | None = None
    ) -> list[Ticket]: ...

    def find_not_in_states(
        self, states: Iterable[TicketState], day: date | None = None
    ) -> list[Ticket]: ...

    def update_state_conditional(
        self,
        ticket_id: str,
        new_state: TicketState,
        expected_state: TicketState | None = None,
    ) -> int: ...


class InMemoryTicketStore:
    """Thread-safe dict-backed store."""

    def __init__(self, *, clock: Clock = datetime.now) -> None:
        self._lock = threading.Lock()
        self._clock = clock
        self._tickets: dict[str, Ticket] = {}

        # Insertion sequence breaks created_at ties deterministically.
        self._seq = itertools.count()
        self._order: dict[str, int] = {}

    def create(self, new: NewTicket) -> Ticket:
        with self._lock:
            for t in self._tickets.values():
                if t.day == new.day and t.number == new.number:
                    raise DuplicateNumberError(
                        f"ticket number {new.number} already used on {new.day}"
                    )
            d = new.draft
            ticket = Ticket(
                id=uuid.uuid4().hex,
                number=new.number,
                reason=d.reason,
                priority=d.priority,
                registered_at=new.created_at,
                state=new.state,
                room=d.room,
                practitioner=d.practitioner,
                patient=d.patient,
                day=new.day,
                created_at=new.created_at,
                updated_at=new.created_at,
            )
            self._tickets[ticket.id] = ticket
            self._order[ticket.id] = next(self._seq)
            return ticket

    def get(self, ticket_id: str) -> Ticket | None:
        with self._lock:
            return self._tickets.get(ticket_id)

    def find_by_day_and_state(
        self, day: date, states: Iterable[TicketState] | None = None
    ) -> list[Ticket]:
        wanted = set(states) if states is not None else None
        with self._lock:
            rows = [
                t
                for t in self._tickets.values()
                if in_day(t.created_at, day) and (wanted is None or t.state in wanted)
            ]
            return self._sorted(rows)

    def find_not_in_states(
        self, states: Iterable[TicketState], day: date | None = None
    ) -> list[Ticket]:
        excluded = set(states)
        with self._lock:
            rows = [
                t
                for t in self._tickets.values()
                if t.state not in excluded and (day is None or in_day(t.created_at, day))
            ]
            return self._sorted(rows)

    def update_state_conditional(
        self,
        ticket_id: str,
        new_state: TicketState,
        expected_state: TicketState | None = None,
    ) -> int:
        with self._lock:
            current = self._tickets.get(ticket_id)
            if current is None:
                return 0
            if expected_state is not None and current.state != expected_state:
                return 0
            self._tickets[ticket_id] = replace(
                current, state=new_state, updated_at=self._clock()
            )
            return 1

    def _sorted(self, rows: list[Ticket]) -> list[Ticket]:
        return sorted(rows, key=lambda t: (t.created_at, self._order[t.id]))
