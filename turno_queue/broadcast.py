from __future__ import annotations

# Broadcast coordinator.
#
# After every committed mutation the coordinator re-reads today's live view
# from the store (it is never handed the mutated ticket) and pushes the full
# snapshot to every viewer. New viewers get the same snapshot right away.
#
# Notification is best-effort: the mutation already committed, so query or
# send failures are logged and never raised to the caller.

import logging
from datetime import date, datetime
from typing import Any, Callable

from .days import Clock, today
from .registry import Subscriber, SubscriberRegistry
from .store import TicketStore
from .ticket import TicketState

log = logging.getLogger(__name__)

PublishFn = Callable[[dict[str, Any]], None]


class BroadcastCoordinator:
    def __init__(
        self,
        *,
        store: TicketStore,
        registry: SubscriberRegistry,
        clock: Clock = datetime.now,
        publish_all: PublishFn | None = None,
    ) -> None:
        self.store = store
        self.registry = registry
        self._clock = clock

        # Optional fan-out channel in addition to per-viewer delivery
        # (e.g. a shared MQTT topic that anyone can subscribe to).
        self._publish_all = publish_all

    def snapshot(self, day: date | None = None) -> dict[str, Any]:
        """Build the `{waiting, in_service}` view for a day (default today)."""
        day = day or today(self._clock)
        waiting = self.store.find_by_day_and_state(day, [TicketState.WAITING])
        in_service = self.store.find_by_day_and_state(day, [TicketState.IN_SERVICE])
        return {
            "type": "queue_snapshot",
            "day": day.isoformat(),
            "waiting": [t.to_message() for t in waiting],
            "in_service": [t.to_message() for t in in_service],
        }

    def on_mutation(self) -> None:
        try:
            snap = self.snapshot()
        except Exception:
            log.exception("could not build queue snapshot after mutation")
            return

        if self._publish_all is not None:
            try:
                self._publish_all(snap)
            except Exception:
                log.exception("broadcast publish failed")

        for sub in self.registry.members():
            self._send(sub, snap)

    def on_subscriber_join(self, subscriber: Subscriber) -> None:
        self.registry.register(subscriber)
        log.info("viewer %s joined (%d connected)", subscriber.id, len(self.registry))
        try:
            snap = self.snapshot()
        except Exception:
            log.exception("could not build queue snapshot for viewer %s", subscriber.id)
            return
        self._send(subscriber, snap)

    def on_subscriber_leave(self, subscriber_id: str) -> None:
        if self.registry.unregister(subscriber_id):
            log.info("viewer %s left (%d connected)", subscriber_id, len(self.registry))

    def _send(self, sub: Subscriber, snap: dict[str, Any]) -> None:
        try:
            sub.send(snap)
        except Exception:
            log.warning("snapshot delivery to viewer %s failed", sub.id, exc_info=True)
