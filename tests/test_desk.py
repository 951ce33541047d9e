from turno_queue import desk


def test_request_messages():
    assert desk.advance_ticket_message("t1", "atencion") == {
        "type": "advance_ticket",
        "id": "t1",
        "state": "atencion",
    }
    assert desk.cancel_ticket_message("t1") == {"type": "cancel_ticket", "id": "t1"}
    assert desk.list_active_message() == {"type": "list_active"}
    msg = desk.create_ticket_message(
        reason="Dolor", priority="Alta", room="C1", practitioner="Dr. Vega", patient="Ana"
    )
    assert msg["type"] == "create_ticket"
    assert msg["priority"] == "Alta"


def test_format_reply():
    ticket = {"id": "abc", "number": "7", "state": "Waiting", "priority": "High", "room": "C1",
              "practitioner": "Dr. Vega", "patient": "Ana"}
    line = desk.format_reply({"type": "ticket", "ticket": ticket})
    assert "#  7" in line
    assert "[abc]" in line

    assert desk.format_reply({"type": "active_tickets", "tickets": []}) == "(no active tickets)"
    assert desk.format_reply({"type": "error", "code": "not_found", "message": "gone"}) == "error not_found: gone"
    assert "[room]" in desk.format_reply(
        {"type": "error", "code": "validation_error", "message": "room is required", "field": "room"}
    )
