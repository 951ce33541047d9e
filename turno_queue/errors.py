"""Error taxonomy and the shared error envelope.

Every failure the queue core can report derives from `TurnoError` and carries
a stable wire `code`. The MQTT adapter turns them into error replies with
`ErrorResponse`, so desk clients and viewers see the same shape everywhere.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class TurnoError(Exception):
    code = "error"

    def to_response(self) -> "ErrorResponse":
        return ErrorResponse(self.code, str(self))


class ValidationError(TurnoError):
    """Bad input. Raised before anything reaches the store."""

    code = "validation_error"

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field

    def to_response(self) -> "ErrorResponse":
        return ErrorResponse(self.code, str(self), field=self.field)


class NumberingError(TurnoError):
    """The previous ticket number of the day could not be parsed."""

    code = "numbering_error"


class InvalidTransitionError(TurnoError):
    code = "invalid_transition"


class NotFoundError(TurnoError):
    code = "not_found"


class StoreError(TurnoError):
    """I/O or constraint failure from the ticket store."""

    code = "store_error"


class DuplicateNumberError(StoreError):
    """Another ticket already holds this number for the same day."""


@dataclass(frozen=True)
class ErrorResponse:
    code: str
    message: str
    field: str | None = None

    def to_message(self, *, corr_id: str | None = None) -> dict[str, Any]:
        msg: dict[str, Any] = {"type": "error", "code": self.code, "message": self.message}
        if self.field is not None:
            msg["field"] = self.field
        if corr_id is not None:
            msg["corr_id"] = corr_id
        return msg
