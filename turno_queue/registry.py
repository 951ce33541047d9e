from __future__ import annotations

# Subscriber registry.
#
# Tracks connected viewers (waiting-room boards, desk dashboards). The
# transport registers a viewer when it connects and unregisters it when it
# leaves or its connection drops. Nothing else is kept per viewer.

import threading
from dataclasses import dataclass
from typing import Any, Callable

SendFn = Callable[[dict[str, Any]], None]


@dataclass(frozen=True)
class Subscriber:
    id: str
    send: SendFn


class SubscriberRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._members: dict[str, Subscriber] = {}

    def register(self, subscriber: Subscriber) -> None:
        """Add a subscriber, replacing any previous one with the same id."""
        with self._lock:
            self._members[subscriber.id] = subscriber

    def unregister(self, subscriber_id: str) -> bool:
        with self._lock:
            return self._members.pop(subscriber_id, None) is not None

    def members(self) -> list[Subscriber]:
        # Copy so publishing never holds the lock.
        with self._lock:
            return list(self._members.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._members)

    def __contains__(self, subscriber_id: object) -> bool:
        with self._lock:
            return subscriber_id in self._members
