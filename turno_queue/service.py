from __future__ import annotations

# Queue service: the MQTT-facing process that owns the ticket store.
#
# This file contains two layers:
# 1) `build_core()` wires store + registry + coordinator + state machine
#    (pure logic, no broker needed)
# 2) `MqttTurnoService` + `main()` (integration with the MQTT broker)
#
# A single long-lived service instance is built at process start and lives
# until shutdown.

import argparse
import logging
import time
from datetime import datetime
from typing import Any, TYPE_CHECKING, Callable

from .broadcast import BroadcastCoordinator
from .config import add_db_args, add_logging_args, add_mqtt_args, configure_logging
from .days import Clock
from .errors import ErrorResponse, TurnoError, ValidationError
from .mqtt_topics import desk_requests, queue_updates, viewer_inbox, viewer_requests
from .registry import Subscriber, SubscriberRegistry
from .state_machine import QueueStateMachine
from .store import InMemoryTicketStore, TicketStore

if TYPE_CHECKING:
    from .mqtt_client import MqttClient

log = logging.getLogger(__name__)


def open_store(db: str, *, clock: Clock = datetime.now) -> TicketStore:
    if db == ":memory:":
        return InMemoryTicketStore(clock=clock)
    from .sqlite_store import SqliteTicketStore

    return SqliteTicketStore.open(db, clock=clock)


def build_core(
    store: TicketStore,
    *,
    publish_all: Callable[[dict[str, Any]], None] | None = None,
    clock: Clock = datetime.now,
) -> tuple[QueueStateMachine, BroadcastCoordinator]:
    registry = SubscriberRegistry()
    coordinator = BroadcastCoordinator(
        store=store, registry=registry, clock=clock, publish_all=publish_all
    )
    machine = QueueStateMachine(store=store, coordinator=coordinator, clock=clock)
    return machine, coordinator


class MqttTurnoService:
    """MQTT adapter around the queue state machine and broadcast coordinator."""

    def __init__(
        self,
        *,
        mqtt: MqttClient,
        store: TicketStore,
        namespace: str,
        clock: Clock = datetime.now,
    ) -> None:
        self.mqtt = mqtt
        self.namespace = namespace

        updates_topic = queue_updates(namespace)
        self.machine, self.coordinator = build_core(
            store,
            publish_all=lambda snap: self.mqtt.publish(updates_topic, snap),
            clock=clock,
        )

    def start(self) -> None:
        self.mqtt.subscribe(desk_requests(self.namespace), qos=1)
        self.mqtt.subscribe(viewer_requests(self.namespace), qos=1)
        self.mqtt.add_handler(self._handle_message)

    def _reply(self, reply_to: str, corr_id: str | None, message: dict[str, Any]) -> None:
        msg = dict(message)
        if corr_id is not None:
            msg["corr_id"] = corr_id
        self.mqtt.publish(reply_to, msg, qos=1)

    def _viewer(self, viewer_id: str) -> Subscriber:
        topic = viewer_inbox(viewer_id, self.namespace)
        return Subscriber(id=viewer_id, send=lambda snap: self.mqtt.publish(topic, snap))

    def _handle_message(self, topic: str, msg: dict[str, Any]) -> None:
        mtype = msg.get("type")

        # -------- viewers --------
        if mtype in ("viewer_join", "viewer_leave"):
            viewer_id = msg.get("viewer_id")
            if not isinstance(viewer_id, str) or not viewer_id:
                return
            if mtype == "viewer_join":
                self.coordinator.on_subscriber_join(self._viewer(viewer_id))
            else:
                self.coordinator.on_subscriber_leave(viewer_id)
            return

        # -------- desk requests --------
        corr_id = msg.get("corr_id") if isinstance(msg.get("corr_id"), str) else None
        reply_to = msg.get("reply_to") if isinstance(msg.get("reply_to"), str) else None
        if not reply_to:
            return

        try:
            reply = self._dispatch(mtype, msg)
        except TurnoError as e:
            log.info("%s rejected: %s (%s)", mtype, e, e.code)
            reply = e.to_response().to_message()
        except Exception:
            log.exception("unexpected failure handling %s", mtype)
            reply = ErrorResponse("internal_error", "internal server error").to_message()
        self._reply(reply_to, corr_id, reply)

    def _dispatch(self, mtype: Any, msg: dict[str, Any]) -> dict[str, Any]:
        if mtype == "create_ticket":
            ticket = self.machine.create_ticket(
                reason=msg.get("reason"),
                priority=msg.get("priority"),
                room=msg.get("room"),
                practitioner=msg.get("practitioner"),
                patient=msg.get("patient"),
            )
            return {"type": "ticket", "ticket": ticket.to_message()}

        if mtype == "advance_ticket":
            ticket = self.machine.advance(_ticket_id(msg), msg.get("state"))
            return {"type": "ticket", "ticket": ticket.to_message()}

        if mtype == "cancel_ticket":
            ticket = self.machine.cancel(_ticket_id(msg))
            return {"type": "ticket", "ticket": ticket.to_message()}

        if mtype == "list_active":
            tickets = self.machine.list_active_tickets()
            return {"type": "active_tickets", "tickets": [t.to_message() for t in tickets]}

        return ErrorResponse("bad_request", f"unknown request type {mtype!r}").to_message()


def _ticket_id(msg: dict[str, Any]) -> str:
    ticket_id = msg.get("id")
    if not isinstance(ticket_id, str) or not ticket_id.strip():
        raise ValidationError("id", "id is required")
    return ticket_id.strip()


def main() -> None:
    from .mqtt_client import MqttClient

    parser = argparse.ArgumentParser(description="Turno queue service (MQTT)")
    add_mqtt_args(parser)
    add_db_args(parser)
    add_logging_args(parser)
    args = parser.parse_args()

    configure_logging(args.log_level)

    store = open_store(args.db)
    mqtt_client = MqttClient(client_id=f"turnos-service-{int(time.time())}", host=args.mqtt_host, port=args.mqtt_port)
    mqtt_client.start()

    service = MqttTurnoService(mqtt=mqtt_client, store=store, namespace=args.namespace)
    service.start()

    print(f"[service] connected to MQTT {args.mqtt_host}:{args.mqtt_port}, namespace={args.namespace}, db={args.db}")

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        mqtt_client.stop()
        close = getattr(store, "close", None)
        if close is not None:
            close()


if __name__ == "__main__":
    main()
