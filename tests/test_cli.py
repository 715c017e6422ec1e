"""Tests for CLI helpers."""

from types import SimpleNamespace

import pytest
from flask import Flask

import app.cli as cli


def _stub_app(sweeper=None) -> Flask:
    app = Flask(__name__)
    app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite:///cli-test.db"
    app.container = SimpleNamespace(reservation_sweeper=lambda: sweeper)
    return app


def test_upgrade_db_reports_target_database(monkeypatch, capsys):
    """The CLI should make the target database explicit before migrating."""
    monkeypatch.setattr(cli, "check_db_connection", lambda: True)
    monkeypatch.setattr(cli, "get_current_revision", lambda: None)
    monkeypatch.setattr(cli, "get_pending_migrations", lambda: ["001"])
    monkeypatch.setattr(
        cli, "upgrade_database", lambda recreate=False: [("001", "Create outward flow tables")]
    )

    cli.handle_upgrade_db(app=_stub_app())

    output = capsys.readouterr().out
    assert "🗄  Using database: sqlite:///cli-test.db" in output
    assert "Found 1 pending migration(s)" in output
    assert "001: Create outward flow tables" in output


def test_upgrade_db_up_to_date(monkeypatch, capsys):
    monkeypatch.setattr(cli, "check_db_connection", lambda: True)
    monkeypatch.setattr(cli, "get_current_revision", lambda: "001")
    monkeypatch.setattr(cli, "get_pending_migrations", lambda: [])

    def fail_upgrade(recreate=False):
        raise AssertionError("upgrade should not run")

    monkeypatch.setattr(cli, "upgrade_database", fail_upgrade)

    cli.handle_upgrade_db(app=_stub_app())

    assert "Database is up to date" in capsys.readouterr().out


def test_recreate_requires_confirmation(monkeypatch):
    monkeypatch.setattr(cli, "check_db_connection", lambda: True)

    with pytest.raises(SystemExit) as exc_info:
        cli.handle_upgrade_db(app=_stub_app(), recreate=True, confirmed=False)

    assert exc_info.value.code == 1


def test_upgrade_db_without_connection(monkeypatch):
    monkeypatch.setattr(cli, "check_db_connection", lambda: False)

    with pytest.raises(SystemExit) as exc_info:
        cli.handle_upgrade_db(app=_stub_app())

    assert exc_info.value.code == 1


def test_sweep_reservations_reports_count(capsys):
    sweeper = SimpleNamespace(sweep=lambda: 3)

    released = cli.handle_sweep_reservations(_stub_app(sweeper))

    assert released == 3
    assert "Released 3 expired reservation(s)" in capsys.readouterr().out


def test_sweep_reservations_failure_exits(capsys):
    def failing_sweep():
        raise RuntimeError("database down")

    with pytest.raises(SystemExit) as exc_info:
        cli.handle_sweep_reservations(_stub_app(SimpleNamespace(sweep=failing_sweep)))

    assert exc_info.value.code == 1
    assert "database down" in capsys.readouterr().err


def test_parser_commands():
    parser = cli.create_parser()

    args = parser.parse_args(["upgrade-db", "--recreate", "--yes-i-am-sure"])
    assert args.command == "upgrade-db"
    assert args.recreate and args.yes_i_am_sure

    assert parser.parse_args(["sweep-reservations"]).command == "sweep-reservations"
