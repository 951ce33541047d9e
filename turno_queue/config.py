from __future__ import annotations

# Command-line configuration shared by every entrypoint.
#
# Each flag can be preset through an environment variable so deployments
# don't need long command lines:
#   TURNOS_MQTT_HOST, TURNOS_MQTT_PORT, TURNOS_NAMESPACE,
#   TURNOS_DB, TURNOS_LOG_LEVEL

import argparse
import logging
import os

from .mqtt_topics import DEFAULT_NAMESPACE

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def add_mqtt_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--mqtt-host", default=os.getenv("TURNOS_MQTT_HOST", "127.0.0.1"))
    p.add_argument("--mqtt-port", type=int, default=int(os.getenv("TURNOS_MQTT_PORT", "1883")))
    p.add_argument("--namespace", default=os.getenv("TURNOS_NAMESPACE", DEFAULT_NAMESPACE))


def add_logging_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--log-level",
        default=os.getenv("TURNOS_LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )


def add_db_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--db",
        default=os.getenv("TURNOS_DB", "turnos.db"),
        help="SQLite file for tickets (':memory:' keeps them in process memory)",
    )


def configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
