from __future__ import annotations

# Desk client.
#
# Front desks and consultorios are short-lived clients in this setup:
# - connect to the broker
# - publish one request (create / advance / cancel / list)
# - wait for the correlated reply
# - disconnect
#
# Replies are returned as plain dicts; `{"type": "error", ...}` replies are
# returned too, the CLI prints them.

import time
import uuid
from typing import Any

from .mqtt_client import MqttClient
from .mqtt_topics import desk_requests, desk_responses


def send_request(
    *,
    mqtt_host: str,
    mqtt_port: int,
    namespace: str,
    message: dict[str, Any],
    timeout: float = 5.0,
) -> dict[str, Any]:
    # Unique client id so several desks can run concurrently.
    client_id = f"desk-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"
    mqtt = MqttClient(client_id=client_id, host=mqtt_host, port=mqtt_port)
    mqtt.start()

    reply_topic = desk_responses(client_id, namespace)
    mqtt.subscribe(reply_topic, qos=1)

    try:
        return mqtt.request(
            request_topic=desk_requests(namespace),
            response_topic=reply_topic,
            message=message,
            timeout=timeout,
        )
    finally:
        mqtt.stop()


def create_ticket_message(
    *, reason: str, priority: str, room: str, practitioner: str, patient: str
) -> dict[str, Any]:
    return {
        "type": "create_ticket",
        "reason": reason,
        "priority": priority,
        "room": room,
        "practitioner": practitioner,
        "patient": patient,
    }


def advance_ticket_message(ticket_id: str, state: str) -> dict[str, Any]:
    return {"type": "advance_ticket", "id": ticket_id, "state": state}


def cancel_ticket_message(ticket_id: str) -> dict[str, Any]:
    return {"type": "cancel_ticket", "id": ticket_id}


def list_active_message() -> dict[str, Any]:
    return {"type": "list_active"}


def format_ticket(t: dict[str, Any]) -> str:
    return (
        f"#{t.get('number', '?'):>3}  {t.get('state', '?'):<9}  {t.get('priority', '?'):<6}  "
        f"{t.get('room', '')} / {t.get('practitioner', '')}  {t.get('patient', '')}  "
        f"[{t.get('id', '')}]"
    )


def format_reply(resp: dict[str, Any]) -> str:
    rtype = resp.get("type")
    if rtype == "ticket":
        return format_ticket(resp.get("ticket") or {})
    if rtype == "active_tickets":
        tickets = resp.get("tickets") or []
        if not tickets:
            return "(no active tickets)"
        return "\n".join(format_ticket(t) for t in tickets)
    if rtype == "error":
        field = resp.get("field")
        where = f" [{field}]" if field else ""
        return f"error {resp.get('code')}{where}: {resp.get('message')}"
    return f"unexpected reply: {resp}"
