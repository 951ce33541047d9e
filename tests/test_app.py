import subprocess
import sys


def _help(*args):
    proc = subprocess.run(
        [sys.executable, "-m", "turno_queue.app", *args, "-h"],
        capture_output=True,
        text=True,
        check=False,
    )
    assert proc.returncode == 0, proc.stderr
    return proc.stdout + proc.stderr


def test_app_help_runs():
    out = _help()
    assert "main entrypoint" in out
    for cmd in ("serve", "create", "advance", "cancel", "list", "board"):
        assert cmd in out


def test_create_help_lists_ticket_fields():
    out = _help("create")
    for flag in ("--reason", "--priority", "--room", "--practitioner", "--patient"):
        assert flag in out


def test_serve_help_lists_db():
    out = _help("serve")
    assert "--db" in out
    assert "--log-level" in out
