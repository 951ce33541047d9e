from turno_queue.errors import ErrorResponse, NotFoundError, ValidationError
from turno_queue.mqtt_topics import (
    desk_requests,
    desk_responses,
    queue_updates,
    viewer_inbox,
    viewer_requests,
)


def test_topic_helpers():
    ns = "demo/v0"
    assert desk_requests(ns) == "demo/v0/desk/requests"
    assert desk_responses("d1", ns) == "demo/v0/desk/responses/d1"
    assert viewer_requests(ns) == "demo/v0/viewers/requests"
    assert viewer_inbox("b1", ns) == "demo/v0/viewers/b1"
    assert queue_updates(ns) == "demo/v0/queue/updates"


def test_default_namespace():
    assert queue_updates() == "turnos/v0/queue/updates"


def test_error_envelope():
    msg = NotFoundError("ticket x not found").to_response().to_message(corr_id="c9")
    assert msg == {"type": "error", "code": "not_found", "message": "ticket x not found", "corr_id": "c9"}

    msg = ValidationError("room", "room is required").to_response().to_message()
    assert msg["field"] == "room"
    assert "corr_id" not in msg

    assert "field" not in ErrorResponse("bad_request", "nope").to_message()
