from __future__ import annotations

# Single entrypoint.
#
#     python -m turno_queue.app serve   [--db turnos.db]
#     python -m turno_queue.app create  --reason ... --priority High --room ... --practitioner ... --patient ...
#     python -m turno_queue.app advance --id <ticket id> --state atencion
#     python -m turno_queue.app cancel  --id <ticket id>
#     python -m turno_queue.app list
#     python -m turno_queue.app board
#
# `serve` and `board` are long-running; the desk commands send one request
# and print the reply.

import argparse
import sys

from .config import add_db_args, add_logging_args, add_mqtt_args, configure_logging


def main() -> None:
    parser = argparse.ArgumentParser(description="Turno queue (MQTT) - main entrypoint")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_serve = sub.add_parser("serve", help="Start the queue service")
    add_mqtt_args(p_serve)
    add_db_args(p_serve)
    add_logging_args(p_serve)

    p_board = sub.add_parser("board", help="Open the waiting-room board (Tkinter)")
    add_mqtt_args(p_board)
    p_board.add_argument("--refresh-ms", type=int, default=250)

    p_create = sub.add_parser("create", help="Issue a new ticket")
    add_mqtt_args(p_create)
    p_create.add_argument("--reason", required=True)
    p_create.add_argument("--priority", required=True, help="High/Medium/Low (or Alta/Media/Baja)")
    p_create.add_argument("--room", required=True, help="consultorio")
    p_create.add_argument("--practitioner", required=True)
    p_create.add_argument("--patient", required=True)

    p_advance = sub.add_parser("advance", help="Move a ticket forward")
    add_mqtt_args(p_advance)
    p_advance.add_argument("--id", required=True)
    p_advance.add_argument("--state", required=True, help="espera | atencion | finalizado")

    p_cancel = sub.add_parser("cancel", help="Cancel a ticket")
    add_mqtt_args(p_cancel)
    p_cancel.add_argument("--id", required=True)

    p_list = sub.add_parser("list", help="List non-cancelled tickets")
    add_mqtt_args(p_list)

    args = parser.parse_args()

    if args.cmd == "serve":
        from .service import main as run

        _dispatch_to_module_main(
            run,
            [
                *_mqtt_argv(args),
                "--db",
                args.db,
                "--log-level",
                args.log_level,
            ],
        )
        return

    if args.cmd == "board":
        from .board import main as run

        _dispatch_to_module_main(run, [*_mqtt_argv(args), "--refresh-ms", str(args.refresh_ms)])
        return

    from . import desk

    configure_logging("WARNING")
    if args.cmd == "create":
        message = desk.create_ticket_message(
            reason=args.reason,
            priority=args.priority,
            room=args.room,
            practitioner=args.practitioner,
            patient=args.patient,
        )
    elif args.cmd == "advance":
        message = desk.advance_ticket_message(args.id, args.state)
    elif args.cmd == "cancel":
        message = desk.cancel_ticket_message(args.id)
    else:
        message = desk.list_active_message()

    resp = desk.send_request(
        mqtt_host=args.mqtt_host,
        mqtt_port=args.mqtt_port,
        namespace=args.namespace,
        message=message,
    )
    print(f"[desk] {desk.format_reply(resp)}")
    if resp.get("type") == "error":
        sys.exit(1)


def _mqtt_argv(args: argparse.Namespace) -> list[str]:
    return ["--mqtt-host", args.mqtt_host, "--mqtt-port", str(args.mqtt_port), "--namespace", args.namespace]


def _dispatch_to_module_main(module_main, argv: list[str]) -> None:
    old_argv = sys.argv[:]
    try:
        sys.argv = [old_argv[0], *argv]
        module_main()
    finally:
        sys.argv = old_argv


if __name__ == "__main__":
    main()
