"""REPL command handlers, with console output captured."""
import io

import pytest
from rich.console import Console

from keytracker import main
from keytracker.models.items import MOGLOPHONE

from builders import key_item_frame, zone_frame


@pytest.fixture
def output(monkeypatch):
    buffer = io.StringIO()
    monkeypatch.setattr(main, "console", Console(file=buffer, width=120, color_system=None))
    return buffer


def test_fix_starts_cooldown(engine, output):
    main.handle_fix(engine, ["fix", "moglo"])
    assert engine.get_timestamp(MOGLOPHONE) > 0
    assert "cooldown started" in output.getvalue()


def test_fix_refuses_held_item(engine, output):
    engine.handle_frame(0x055, key_item_frame({MOGLOPHONE}), now=1000)
    main.handle_fix(engine, ["fix", "Moglophone"])
    assert engine.get_timestamp(MOGLOPHONE) == 1000
    assert "already in your inventory" in output.getvalue()


def test_fix_unknown_item(engine, output):
    main.handle_fix(engine, ["fix", "qqqq"])
    assert "Unknown item" in output.getvalue()


def test_hourglass(engine, output):
    main.handle_hourglass(engine, ["hourglass", "7200"])
    assert engine.time_bank_value() == 7200
    main.handle_hourglass(engine, ["hourglass", "later"])
    assert "Invalid time value" in output.getvalue()


def test_zone_notifier(engine, output):
    engine.handle_frame(0x055, key_item_frame({MOGLOPHONE}), now=1000)
    engine.handle_frame(0x055, key_item_frame(), now=2000)
    notifier = main.ZoneNotifier(engine)
    engine.zone_events.subscribe(notifier)

    engine.handle_frame(0x00A, zone_frame(100))
    assert "Moglophone is ready for pickup" in output.getvalue()

    notifier.toggle()
    output.truncate(0)
    output.seek(0)
    engine.handle_frame(0x00A, zone_frame(101))
    assert output.getvalue() == ""


def test_status_and_backup_commands(engine, output):
    engine.force_timestamp(MOGLOPHONE)
    main.handle_status(engine)
    main.handle_backup(engine, ["backup", "create"])
    main.handle_backup(engine, ["backup", "list"])
    text = output.getvalue()
    assert "Moglophone" in text
    assert "Backup created" in text
    assert "keytracker_backup_42_" in text
