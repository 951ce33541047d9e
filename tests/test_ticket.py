import pytest

from turno_queue.errors import ValidationError
from turno_queue.ticket import (
    Priority,
    TicketDraft,
    TicketState,
    can_transition,
    parse_priority,
    parse_state_token,
)


def test_state_tokens_map_to_states():
    assert parse_state_token("espera") is TicketState.WAITING
    assert parse_state_token("atencion") is TicketState.IN_SERVICE
    assert parse_state_token("En atención") is TicketState.IN_SERVICE
    assert parse_state_token(" FINALIZADO ") is TicketState.DONE
    assert parse_state_token("in_service") is TicketState.IN_SERVICE


@pytest.mark.parametrize("token", ["", "cancelado", "bogus", None, 3])
def test_unknown_state_token_is_rejected(token):
    with pytest.raises(ValidationError) as exc:
        parse_state_token(token)
    assert exc.value.field == "state"


def test_lifecycle_graph():
    assert can_transition(TicketState.WAITING, TicketState.IN_SERVICE)
    assert can_transition(TicketState.WAITING, TicketState.CANCELLED)
    assert can_transition(TicketState.IN_SERVICE, TicketState.DONE)
    assert can_transition(TicketState.IN_SERVICE, TicketState.CANCELLED)

    assert not can_transition(TicketState.WAITING, TicketState.DONE)
    assert not can_transition(TicketState.IN_SERVICE, TicketState.WAITING)
    for terminal in (TicketState.DONE, TicketState.CANCELLED):
        assert terminal.is_terminal
        for target in TicketState:
            assert not can_transition(terminal, target)


def test_priority_accepts_spanish_labels():
    assert parse_priority("Alta") is Priority.HIGH
    assert parse_priority("media") is Priority.MEDIUM
    assert parse_priority("Low") is Priority.LOW
    with pytest.raises(ValidationError):
        parse_priority("Urgent")


def test_draft_trims_fields(fields):
    fields["patient"] = "  Ana Soto  "
    draft = TicketDraft.from_fields(**fields)
    assert draft.patient == "Ana Soto"
    assert draft.priority is Priority.MEDIUM


@pytest.mark.parametrize("name", ["reason", "priority", "room", "practitioner", "patient"])
def test_draft_requires_every_field(fields, name):
    fields.pop(name)
    with pytest.raises(ValidationError) as exc:
        TicketDraft.from_fields(**fields)
    assert exc.value.field == name


def test_draft_rejects_blank_and_oversized_text(fields):
    with pytest.raises(ValidationError):
        TicketDraft.from_fields(**dict(fields, room="   "))
    with pytest.raises(ValidationError) as exc:
        TicketDraft.from_fields(**dict(fields, reason="x" * 501))
    assert exc.value.field == "reason"
