"""SQLite-backed ticket store.

Uses the built-in `sqlite3` module. One connection is shared by all request
handlers (`check_same_thread=False`) and every statement runs under a lock.

The table carries a `UNIQUE (day, number)` constraint so that two processes
sharing the same database file cannot both hand out the same ticket number;
the state machine retries numbering when it sees `DuplicateNumberError`.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import uuid
from datetime import date, datetime
from typing import Iterable

from .days import Clock, day_bounds
from .errors import DuplicateNumberError, StoreError
from .ticket import NewTicket, Priority, Ticket, TicketState

log = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS tickets (
    id TEXT PRIMARY KEY,
    number TEXT NOT NULL,
    day TEXT NOT NULL,
    reason TEXT NOT NULL,
    priority TEXT NOT NULL CHECK (priority IN ('High', 'Medium', 'Low')),
    registered_at TEXT NOT NULL,
    state TEXT NOT NULL DEFAULT 'Waiting'
        CHECK (state IN ('Waiting', 'InService', 'Done', 'Cancelled')),
    room TEXT NOT NULL,
    practitioner TEXT NOT NULL,
    patient TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (day, number)
);
CREATE INDEX IF NOT EXISTS idx_tickets_created_at ON tickets (created_at);
"""


def _ts(value: datetime) -> str:
    # Fixed-width ISO text so string comparison matches time ordering.
    return value.isoformat(timespec="microseconds")


def connect(path: str) -> sqlite3.Connection:
    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


class SqliteTicketStore:
    def __init__(self, conn: sqlite3.Connection, *, clock: Clock = datetime.now) -> None:
        self._conn = conn
        self._clock = clock
        self._lock = threading.Lock()
        self.init_schema()

    @classmethod
    def open(cls, path: str, *, clock: Clock = datetime.now) -> "SqliteTicketStore":
        try:
            conn = connect(path)
        except sqlite3.Error as e:
            raise StoreError(f"cannot open database {path}: {e}") from e
        log.info("opened ticket database %s", path)
        return cls(conn, clock=clock)

    def init_schema(self) -> None:
        with self._lock:
            try:
                self._conn.executescript(_SCHEMA)
                self._conn.commit()
            except sqlite3.Error as e:
                raise StoreError(f"cannot create schema: {e}") from e

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # -------------------- operations --------------------

    def create(self, new: NewTicket) -> Ticket:
        created = _ts(new.created_at)
        d = new.draft
        ticket_id = uuid.uuid4().hex
        with self._lock:
            try:
                self._conn.execute(
                    "INSERT INTO tickets (id, number, day, reason, priority, registered_at,"
                    " state, room, practitioner, patient, created_at, updated_at)"
                    " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        ticket_id,
                        new.number,
                        new.day,
                        d.reason,
                        d.priority.value,
                        created,
                        new.state.value,
                        d.room,
                        d.practitioner,
                        d.patient,
                        created,
                        created,
                    ),
                )
                self._conn.commit()
            except sqlite3.IntegrityError as e:
                self._conn.rollback()
                if "UNIQUE" in str(e) and "number" in str(e):
                    raise DuplicateNumberError(
                        f"ticket number {new.number} already used on {new.day}"
                    ) from e
                raise StoreError(str(e)) from e
            except sqlite3.Error as e:
                self._conn.rollback()
                raise StoreError(str(e)) from e
            row = self._fetch_one("SELECT * FROM tickets WHERE id = ?", (ticket_id,))
        if row is None:
            raise StoreError(f"ticket {ticket_id} vanished right after insert")
        return _row_to_ticket(row)

    def get(self, ticket_id: str) -> Ticket | None:
        with self._lock:
            row = self._fetch_one("SELECT * FROM tickets WHERE id = ?", (ticket_id,))
        return _row_to_ticket(row) if row is not None else None

    def find_by_day_and_state(
        self, day: date, states: Iterable[TicketState] | None = None
    ) -> list[Ticket]:
        start, end = day_bounds(day)
        sql = "SELECT * FROM tickets WHERE created_at >= ? AND created_at < ?"
        params: list[str] = [_ts(start), _ts(end)]
        if states is not None:
            values = [s.value for s in states]
            sql += f" AND state IN ({', '.join('?' for _ in values)})"
            params += values
        sql += " ORDER BY created_at, rowid"
        return self._select(sql, params)

    def find_not_in_states(
        self, states: Iterable[TicketState], day: date | None = None
    ) -> list[Ticket]:
        values = [s.value for s in states]
        sql = f"SELECT * FROM tickets WHERE state NOT IN ({', '.join('?' for _ in values)})"
        params: list[str] = list(values)
        if day is not None:
            start, end = day_bounds(day)
            sql += " AND created_at >= ? AND created_at < ?"
            params += [_ts(start), _ts(end)]
        sql += " ORDER BY created_at, rowid"
        return self._select(sql, params)

    def update_state_conditional(
        self,
        ticket_id: str,
        new_state: TicketState,
        expected_state: TicketState | None = None,
    ) -> int:
        sql = "UPDATE tickets SET state = ?, updated_at = ? WHERE id = ?"
        params: list[str] = [new_state.value, _ts(self._clock()), ticket_id]
        if expected_state is not None:
            sql += " AND state = ?"
            params.append(expected_state.value)
        with self._lock:
            try:
                cur = self._conn.execute(sql, params)
                self._conn.commit()
            except sqlite3.Error as e:
                self._conn.rollback()
                raise StoreError(str(e)) from e
            return cur.rowcount

    # -------------------- helpers --------------------

    def _fetch_one(self, sql: str, params: tuple) -> sqlite3.Row | None:
        # Caller holds the lock.
        try:
            return self._conn.execute(sql, params).fetchone()
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e

    def _select(self, sql: str, params: list[str]) -> list[Ticket]:
        with self._lock:
            try:
                rows = self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise StoreError(str(e)) from e
        return [_row_to_ticket(r) for r in rows]


def _row_to_ticket(row: sqlite3.Row) -> Ticket:
    return Ticket(
        id=row["id"],
        number=row["number"],
        reason=row["reason"],
        priority=Priority(row["priority"]),
        registered_at=datetime.fromisoformat(row["registered_at"]),
        state=TicketState(row["state"]),
        room=row["room"],
        practitioner=row["practitioner"],
        patient=row["patient"],
        day=row["day"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )
