from __future__ import annotations

# Ticket numbering policy.
#
# Numbers are derived from the store rather than kept in a counter: the next
# number of a day is the number of the day's most recent ticket plus one,
# whatever that ticket's state. Cancelled tickets therefore still consume a
# number, like a paper ticket pulled from a dispenser.
#
# This read is not atomic with the following insert. Callers must hold the
# per-day creation lock (see `QueueStateMachine.create_ticket`).

from datetime import date

from .errors import NumberingError
from .store import TicketStore


def next_number(store: TicketStore, day: date) -> str:
    tickets = store.find_by_day_and_state(day)
    if not tickets:
        return "1"

    last = tickets[-1]
    try:
        n = int(last.number)
    except (TypeError, ValueError) as e:
        raise NumberingError(
            f"cannot parse number {last.number!r} of ticket {last.id} on {day.isoformat()}"
        ) from e
    if n < 1:
        raise NumberingError(f"ticket {last.id} has non-positive number {last.number!r}")
    return str(n + 1)
