"""JSON pub/sub helper on top of paho-mqtt.

`MqttClient` owns one broker connection and its background network loop
(paho's `loop_start`). On top of the callback API it offers:

- `publish()` / `subscribe()` with JSON payloads,
- `add_handler()` for incoming messages,
- `request()`: publish a message carrying `corr_id` + `reply_to` and block
  until the correlated reply arrives,
- an optional last-will message, which the broker publishes for us if the
  connection drops (boards use it to leave the viewer registry).
"""

from __future__ import annotations

import json
import logging
import queue
import threading
import uuid
from typing import Any, Callable

import paho.mqtt.client as mqtt

log = logging.getLogger(__name__)

MessageHandler = Callable[[str, dict[str, Any]], None]


class MqttClient:
    def __init__(
        self,
        *,
        client_id: str,
        host: str,
        port: int,
        keepalive: int = 30,
        will: tuple[str, dict[str, Any]] | None = None,
    ) -> None:
        self.client_id = client_id
        self.host = host
        self.port = port
        self.keepalive = keepalive

        self._client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2, client_id=client_id, clean_session=True
        )
        self._client.on_message = self._on_message
        if will is not None:
            topic, message = will
            self._client.will_set(topic, payload=_encode(message), qos=1)

        self._handlers: list[MessageHandler] = []

        # corr_id -> single-slot reply queue for request()
        self._pending: dict[str, "queue.Queue[dict[str, Any]]"] = {}
        self._lock = threading.Lock()

        self._started = False

    def start(self) -> None:
        if self._started:
            return
        self._client.connect(self.host, self.port, keepalive=self.keepalive)
        self._client.loop_start()
        self._started = True
        log.debug("%s connected to %s:%s", self.client_id, self.host, self.port)

    def stop(self) -> None:
        if not self._started:
            return
        self._client.loop_stop()
        self._client.disconnect()
        self._started = False

    def add_handler(self, handler: MessageHandler) -> None:
        self._handlers.append(handler)

    def subscribe(self, topic: str, qos: int = 0) -> None:
        self._client.subscribe(topic, qos=qos)

    def publish(self, topic: str, message: dict[str, Any], qos: int = 0) -> None:
        self._client.publish(topic, payload=_encode(message), qos=qos)

    def request(
        self,
        *,
        request_topic: str,
        response_topic: str,
        message: dict[str, Any],
        timeout: float = 5.0,
    ) -> dict[str, Any]:
        """Publish `message` and wait for the reply with the same `corr_id`.

        The caller must already be subscribed to `response_topic`.
        Raises `TimeoutError` when nothing arrives within `timeout` seconds.
        """
        corr_id = str(uuid.uuid4())
        msg = dict(message, corr_id=corr_id, reply_to=response_topic)

        q: "queue.Queue[dict[str, Any]]" = queue.Queue(maxsize=1)
        with self._lock:
            self._pending[corr_id] = q

        self.publish(request_topic, msg, qos=1)
        try:
            return q.get(timeout=timeout)
        except queue.Empty as e:
            raise TimeoutError(f"no reply to {msg.get('type')} (corr_id={corr_id})") from e
        finally:
            with self._lock:
                self._pending.pop(corr_id, None)

    # -------------------- paho callbacks (network thread) --------------------

    def _on_message(self, client: mqtt.Client, userdata: Any, msg: mqtt.MQTTMessage) -> None:
        try:
            raw = msg.payload
            data = json.loads(raw.decode("utf-8") if isinstance(raw, bytes) else str(raw))
        except (UnicodeDecodeError, ValueError):
            log.warning("dropping malformed message on %s", msg.topic)
            return
        if not isinstance(data, dict):
            return

        corr_id = data.get("corr_id")
        if isinstance(corr_id, str):
            with self._lock:
                pending = self._pending.get(corr_id)
            if pending is not None:
                try:
                    pending.put_nowait(data)
                except queue.Full:
                    pass
                return

        for h in list(self._handlers):
            try:
                h(msg.topic, data)
            except Exception:
                # A failing handler must not kill paho's network thread.
                log.exception("handler failed for message on %s", msg.topic)


def _encode(message: dict[str, Any]) -> bytes:
    return json.dumps(message, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
