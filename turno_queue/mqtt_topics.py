"""MQTT topic helpers.

Topic construction lives in one place so the service, desk clients and boards
agree on naming.

Topic layout under a configurable namespace (default: `turnos/v0`):

Request/response:
- `<ns>/desk/requests`
    Front desks and consultorios send create/advance/cancel/list requests.
- `<ns>/desk/responses/<client_id>`
    Reply topic of one desk client.

Viewers:
- `<ns>/viewers/requests`
    `viewer_join` / `viewer_leave` (the leave message doubles as last will).
- `<ns>/viewers/<viewer_id>`
    Snapshots addressed to one viewer.

Broadcast:
- `<ns>/queue/updates`
    Full queue snapshot after every mutation.
"""

from __future__ import annotations

DEFAULT_NAMESPACE = "turnos/v0"


def desk_requests(namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}/desk/requests"


def desk_responses(client_id: str, namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}/desk/responses/{client_id}"


def viewer_requests(namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}/viewers/requests"


def viewer_inbox(viewer_id: str, namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}/viewers/{viewer_id}"


def queue_updates(namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}/queue/updates"
