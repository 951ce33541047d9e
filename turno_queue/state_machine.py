from __future__ import annotations

# Queue state machine.
#
# This is the authoritative entry point for every ticket mutation:
# - create_ticket: validate, number, persist (state=Waiting)
# - advance:       move a ticket forward along the lifecycle graph
# - cancel:        move a Waiting/InService ticket to Cancelled
#
# Every successful mutation is followed by `BroadcastCoordinator.on_mutation()`.
# Errors (ValidationError, NumberingError, InvalidTransitionError,
# NotFoundError, StoreError) propagate to the caller unchanged.

import logging
import threading
from datetime import date, datetime
from typing import Any

from .broadcast import BroadcastCoordinator
from .days import Clock
from .errors import DuplicateNumberError, InvalidTransitionError, NotFoundError
from .numbering import next_number
from .store import TicketStore
from .ticket import (
    NewTicket,
    Ticket,
    TicketDraft,
    TicketState,
    can_transition,
    parse_state_token,
)

log = logging.getLogger(__name__)


class QueueStateMachine:
    """Ticket lifecycle logic (testable without MQTT)."""

    def __init__(
        self,
        *,
        store: TicketStore,
        coordinator: BroadcastCoordinator | None = None,
        clock: Clock = datetime.now,
        create_retries: int = 3,
    ) -> None:
        self.store = store
        self.coordinator = coordinator
        self._clock = clock
        self._create_retries = create_retries

        # Numbering reads the day's last ticket and then inserts; the pair must
        # not interleave with another creation for the same day.
        self._day_locks: dict[str, threading.Lock] = {}
        self._day_locks_guard = threading.Lock()

    # -------------------- creation --------------------

    def create_ticket(self, draft: TicketDraft | None = None, **fields: Any) -> Ticket:
        """Create a ticket from a draft or from raw fields.

        Raw fields go through `TicketDraft.from_fields` first, so bad input is
        rejected before the store is touched.
        """
        if draft is None:
            draft = TicketDraft.from_fields(**fields)

        while True:
            day = self._clock().date()
            with self._day_lock(day):
                # The creation instant is taken under the lock so created_at
                # order follows number order within a day.
                now = self._clock()
                if now.date() == day:
                    ticket = self._insert_numbered(draft, now)
                    break
            # Midnight passed while waiting for the lock; retry under the new day's lock.

        log.info("created ticket %s #%s for %s (%s)", ticket.id, ticket.number, ticket.room, ticket.day)
        self._notify()
        return ticket

    def _insert_numbered(self, draft: TicketDraft, now: datetime) -> Ticket:
        day = now.date()
        attempt = 0
        while True:
            number = next_number(self.store, day)
            new = NewTicket(draft=draft, number=number, day=day.isoformat(), created_at=now)
            try:
                return self.store.create(new)
            except DuplicateNumberError:
                # Another process sharing the store took this number first.
                attempt += 1
                if attempt > self._create_retries:
                    raise
                log.warning("ticket number %s taken on %s, renumbering (attempt %d)", number, day, attempt)

    def _day_lock(self, day: date) -> threading.Lock:
        key = day.isoformat()
        with self._day_locks_guard:
            # Older days never see another creation.
            for stale in [k for k in self._day_locks if k < key]:
                del self._day_locks[stale]
            lock = self._day_locks.get(key)
            if lock is None:
                lock = self._day_locks[key] = threading.Lock()
            return lock

    # -------------------- transitions --------------------

    def advance(self, ticket_id: str, target: Any) -> Ticket:
        """Move a ticket to the state named by an external token."""
        state = target if isinstance(target, TicketState) else parse_state_token(target)
        return self._transition(ticket_id, state)

    def cancel(self, ticket_id: str) -> Ticket:
        return self._transition(ticket_id, TicketState.CANCELLED)

    def _transition(self, ticket_id: str, target: TicketState) -> Ticket:
        current = self.store.get(ticket_id)
        if current is None:
            raise NotFoundError(f"ticket {ticket_id} not found")

        if not can_transition(current.state, target):
            raise InvalidTransitionError(
                f"ticket {ticket_id}: {current.state.value} -> {target.value} is not allowed"
            )

        changed = self.store.update_state_conditional(
            ticket_id, target, expected_state=current.state
        )
        if changed == 0:
            # Lost a race: the ticket moved (or vanished) after we read it.
            latest = self.store.get(ticket_id)
            if latest is None:
                raise NotFoundError(f"ticket {ticket_id} not found")
            raise InvalidTransitionError(
                f"ticket {ticket_id} is now {latest.state.value}; "
                f"{current.state.value} -> {target.value} no longer applies"
            )

        updated = self.store.get(ticket_id)
        if updated is None:
            raise NotFoundError(f"ticket {ticket_id} not found")

        log.info("ticket %s #%s: %s -> %s", ticket_id, updated.number, current.state.value, target.value)
        self._notify()
        return updated

    # -------------------- queries --------------------

    def list_active_tickets(self, day: date | None = None) -> list[Ticket]:
        """Non-cancelled tickets in creation order (all days unless `day` is given)."""
        return self.store.find_not_in_states([TicketState.CANCELLED], day=day)

    def _notify(self) -> None:
        if self.coordinator is not None:
            self.coordinator.on_mutation()
