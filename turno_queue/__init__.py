"""Walk-in service queue ("turnos") shared by several consultorios (MQTT-based).

The package coordinates:
- a Queue Service that owns the ticket store, numbers tickets per day and
  validates their lifecycle (Waiting -> InService -> Done, or Cancelled)
- Desk clients that issue, advance and cancel tickets
- Waiting-room boards that receive the live queue after every change

Run `python -m turno_queue.app -h` for the commands.
"""
