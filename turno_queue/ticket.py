from __future__ import annotations

# Ticket ("turno") model.
#
# A ticket is created in `Waiting` and then moves forward only:
#
#     Waiting -> InService -> Done
#     Waiting | InService -> Cancelled
#
# `Done` and `Cancelled` are terminal. Nothing ever goes back to `Waiting`.

import enum
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

from .errors import ValidationError


class Priority(str, enum.Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class TicketState(str, enum.Enum):
    WAITING = "Waiting"
    IN_SERVICE = "InService"
    DONE = "Done"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (TicketState.DONE, TicketState.CANCELLED)


# Allowed edges of the lifecycle graph.
TRANSITIONS: dict[TicketState, frozenset[TicketState]] = {
    TicketState.WAITING: frozenset({TicketState.IN_SERVICE, TicketState.CANCELLED}),
    TicketState.IN_SERVICE: frozenset({TicketState.DONE, TicketState.CANCELLED}),
    TicketState.DONE: frozenset(),
    TicketState.CANCELLED: frozenset(),
}


def can_transition(current: TicketState, target: TicketState) -> bool:
    return target in TRANSITIONS[current]


# Tokens accepted from desk clients. Front desks historically send the Spanish
# labels shown on the waiting-room screens.
_STATE_TOKENS: dict[str, TicketState] = {
    "espera": TicketState.WAITING,
    "en espera": TicketState.WAITING,
    "waiting": TicketState.WAITING,
    "atencion": TicketState.IN_SERVICE,
    "atención": TicketState.IN_SERVICE,
    "en atención": TicketState.IN_SERVICE,
    "en atencion": TicketState.IN_SERVICE,
    "inservice": TicketState.IN_SERVICE,
    "in_service": TicketState.IN_SERVICE,
    "finalizado": TicketState.DONE,
    "done": TicketState.DONE,
}

_PRIORITY_TOKENS: dict[str, Priority] = {
    "high": Priority.HIGH,
    "alta": Priority.HIGH,
    "medium": Priority.MEDIUM,
    "media": Priority.MEDIUM,
    "low": Priority.LOW,
    "baja": Priority.LOW,
}


def parse_state_token(token: Any) -> TicketState:
    """Map an external state token to a state reachable through `advance`.

    Unknown tokens raise `ValidationError`; they are never coerced to
    `Waiting`. Cancellation has its own operation and no token.
    """
    if isinstance(token, str):
        state = _STATE_TOKENS.get(token.strip().lower())
        if state is not None:
            return state
    raise ValidationError("state", f"unrecognized state token: {token!r}")


def parse_priority(value: Any) -> Priority:
    if isinstance(value, Priority):
        return value
    if isinstance(value, str):
        p = _PRIORITY_TOKENS.get(value.strip().lower())
        if p is not None:
            return p
    raise ValidationError("priority", "priority must be one of High, Medium, Low")


# Text limits. The reason is free text; the rest are names/labels.
MAX_REASON_LEN = 500
MAX_LABEL_LEN = 100

_TEXT_FIELDS: tuple[tuple[str, int], ...] = (
    ("reason", MAX_REASON_LEN),
    ("room", MAX_LABEL_LEN),
    ("practitioner", MAX_LABEL_LEN),
    ("patient", MAX_LABEL_LEN),
)


@dataclass(frozen=True)
class TicketDraft:
    """Validated creation request (everything except what the core assigns)."""

    reason: str
    priority: Priority
    room: str
    practitioner: str
    patient: str

    @classmethod
    def from_fields(cls, **fields: Any) -> "TicketDraft":
        """Validate raw input fields and build a draft.

        Text fields are trimmed; empty or missing ones raise `ValidationError`
        naming the offending field. Nothing here touches the store.
        """
        cleaned: dict[str, str] = {}
        for name, limit in _TEXT_FIELDS:
            raw = fields.get(name)
            if raw is None or not isinstance(raw, str) or not raw.strip():
                raise ValidationError(name, f"{name} is required")
            value = raw.strip()
            if len(value) > limit:
                raise ValidationError(name, f"{name} exceeds {limit} characters")
            cleaned[name] = value

        if fields.get("priority") is None:
            raise ValidationError("priority", "priority is required")
        priority = parse_priority(fields["priority"])

        return cls(priority=priority, **cleaned)


@dataclass(frozen=True)
class NewTicket:
    """What the core hands to the store on creation.

    `created_at` is the single creation instant: `day` is its date, and the
    store records it as `registered_at`, `created_at` and the first
    `updated_at`.
    """

    draft: TicketDraft
    number: str
    day: str  # ISO date of created_at
    created_at: datetime
    state: TicketState = TicketState.WAITING


@dataclass(frozen=True)
class Ticket:
    id: str
    number: str
    reason: str
    priority: Priority
    registered_at: datetime
    state: TicketState
    room: str
    practitioner: str
    patient: str
    day: str
    created_at: datetime
    updated_at: datetime

    def to_message(self) -> dict[str, Any]:
        msg = asdict(self)
        msg["priority"] = self.priority.value
        msg["state"] = self.state.value
        for key in ("registered_at", "created_at", "updated_at"):
            msg[key] = getattr(self, key).isoformat()
        return msg
