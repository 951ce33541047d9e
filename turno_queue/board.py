from __future__ import annotations

# Waiting-room board (Tkinter).
#
# Shows today's live view: who is being attended, and the waiting list.
#
# Architecture:
# - On start the board joins the viewer registry (`viewer_join`) and gets a
#   full snapshot on its own inbox topic, then one after every change.
# - Its MQTT last will is a `viewer_leave`, so the service drops it from the
#   registry even if the window is killed.
# - MQTT callbacks run on paho's network thread; Tkinter must be touched only
#   from the UI thread, so snapshots go through a `SnapshotInbox` polled by `after()`.

import argparse
import time
import tkinter as tk
import uuid
from tkinter import ttk
from typing import Any, cast

from .config import add_mqtt_args
from .inbox import SnapshotInbox
from .mqtt_client import MqttClient
from .mqtt_topics import viewer_inbox, viewer_requests

_COLUMNS = ("number", "priority", "room", "practitioner", "patient")


class BoardApp:
    def __init__(self, *, mqtt_host: str, mqtt_port: int, namespace: str, refresh_ms: int = 250) -> None:
        self.mqtt_host = mqtt_host
        self.mqtt_port = mqtt_port
        self.namespace = namespace
        self.refresh_ms = refresh_ms
        self.viewer_id = f"board-{uuid.uuid4().hex[:8]}"

        self.root = tk.Tk()
        self.root.title("Turnos")
        self.root.geometry("820x520")

        self.info_var = tk.StringVar(value="Connecting...")
        ttk.Label(self.root, textvariable=self.info_var).pack(fill=cast(Any, tk.X), padx=10, pady=(10, 5))

        ttk.Label(self.root, text="En atención").pack(anchor=cast(Any, tk.W), padx=10)
        self.in_service_tree = self._make_tree(height=5)

        ttk.Label(self.root, text="En espera").pack(anchor=cast(Any, tk.W), padx=10)
        self.waiting_tree = self._make_tree(height=12)

        self._inbox = SnapshotInbox(maxsize=5)

        leave = {"type": "viewer_leave", "viewer_id": self.viewer_id}
        self._mqtt = MqttClient(
            client_id=self.viewer_id,
            host=mqtt_host,
            port=mqtt_port,
            will=(viewer_requests(namespace), leave),
        )
        self._last_snapshot_ts: float | None = None

        self.root.protocol("WM_DELETE_WINDOW", self.close)

    def _make_tree(self, *, height: int) -> ttk.Treeview:
        tree = ttk.Treeview(self.root, columns=_COLUMNS, show="headings", height=height)
        headings = {
            "number": "Turno",
            "priority": "Prioridad",
            "room": "Consultorio",
            "practitioner": "Médico",
            "patient": "Paciente",
        }
        for col in _COLUMNS:
            tree.heading(col, text=headings[col])
            tree.column(col, width=70 if col == "number" else 160, anchor=cast(Any, tk.W))
        tree.pack(fill=cast(Any, tk.BOTH), expand=True, padx=10, pady=(0, 10))
        return tree

    def start(self) -> None:
        # If the broker isn't reachable, keep the window up and say so.
        try:
            self._mqtt.start()
            self._mqtt.subscribe(viewer_inbox(self.viewer_id, self.namespace), qos=1)
            self._mqtt.add_handler(self._on_mqtt_message)
            self._mqtt.publish(
                viewer_requests(self.namespace),
                {"type": "viewer_join", "viewer_id": self.viewer_id},
                qos=1,
            )
            self.info_var.set(self._status_line("waiting for queue..."))
        except OSError as e:
            self.info_var.set(f"MQTT connection failed: {e}")

        self.root.after(cast(Any, self.refresh_ms), self._drain_inbox)
        self.root.mainloop()

    def close(self) -> None:
        try:
            self._mqtt.publish(
                viewer_requests(self.namespace), {"type": "viewer_leave", "viewer_id": self.viewer_id}, qos=1
            )
            self._mqtt.stop()
        finally:
            self.root.destroy()

    def _status_line(self, tail: str) -> str:
        return f"MQTT {self.mqtt_host}:{self.mqtt_port} | namespace={self.namespace} | {tail}"

    # -------------------- MQTT thread callback --------------------

    def _on_mqtt_message(self, topic: str, msg: dict[str, Any]) -> None:
        if msg.get("type") != "queue_snapshot":
            return
        self._inbox.put(msg)

    # -------------------- UI thread polling --------------------

    def _drain_inbox(self) -> None:
        latest = self._inbox.latest()
        if latest is not None:
            self._last_snapshot_ts = time.time()
            self._render(latest)
        if self._last_snapshot_ts is not None:
            age = max(0.0, time.time() - self._last_snapshot_ts)
            self.info_var.set(self._status_line(f"last update {age:0.1f}s ago"))

        self.root.after(cast(Any, self.refresh_ms), self._drain_inbox)

    def _render(self, snapshot: dict[str, Any]) -> None:
        _fill(self.in_service_tree, snapshot.get("in_service"))
        _fill(self.waiting_tree, snapshot.get("waiting"))


def _fill(tree: ttk.Treeview, tickets: Any) -> None:
    for item in tree.get_children():
        tree.delete(item)
    if not isinstance(tickets, list) or not tickets:
        tree.insert("", cast(Any, tk.END), values=("-", "", "", "", ""))
        return
    for t in tickets:
        if isinstance(t, dict):
            tree.insert("", cast(Any, tk.END), values=tuple(str(t.get(c, "")) for c in _COLUMNS))


def main() -> None:
    parser = argparse.ArgumentParser(description="Waiting-room board (Tkinter + MQTT)")
    add_mqtt_args(parser)
    parser.add_argument("--refresh-ms", type=int, default=250)
    args = parser.parse_args()

    app = BoardApp(
        mqtt_host=args.mqtt_host,
        mqtt_port=args.mqtt_port,
        namespace=args.namespace,
        refresh_ms=args.refresh_ms,
    )
    app.start()


if __name__ == "__main__":
    main()
