from __future__ import annotations

# Snapshot hand-off between the MQTT network thread and the board's UI thread.
#
# Snapshots are complete and only sent when the queue changes, so the newest
# one must never be lost: when the buffer is full the oldest entry goes.

import queue
from typing import Any


class SnapshotInbox:
    def __init__(self, maxsize: int = 5) -> None:
        self._q: "queue.Queue[dict[str, Any]]" = queue.Queue(maxsize=maxsize)

    def put(self, snapshot: dict[str, Any]) -> None:
        while True:
            try:
                self._q.put_nowait(snapshot)
                return
            except queue.Full:
                try:
                    self._q.get_nowait()
                except queue.Empty:
                    pass

    def latest(self) -> dict[str, Any] | None:
        """Drain the buffer and return the newest snapshot (None if empty)."""
        latest: dict[str, Any] | None = None
        while True:
            try:
                latest = self._q.get_nowait()
            except queue.Empty:
                return latest
