"""Status window - live view of key item cooldowns."""

from __future__ import annotations
from typing import TYPE_CHECKING

from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import Header, Footer
from textual.binding import Binding

from keytracker.tui.panels import GatedZonePanel, KeyItemPanel, NotificationLog

if TYPE_CHECKING:
    from keytracker.engine import CooldownEngine
    from keytracker.models.events import Event


class KeyTrackerApp(App):
    """Refreshes the tracker's status once a second."""

    CSS = """
    Screen {
        layout: vertical;
    }

    #items-container {
        height: auto;
        border: solid $primary;
        border-title-color: $text;
    }

    #zone-container {
        height: auto;
        border: solid $secondary;
        border-title-color: $text;
    }

    #log-container {
        height: 1fr;
        border: solid $secondary;
        border-title-color: $text;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit", show=True),
        Binding("s", "save", "Save", show=True),
        Binding("b", "backup", "Backup", show=True),
    ]

    TITLE = "Keytracker"

    def __init__(self, engine: "CooldownEngine", refresh_interval: float = 1.0, **kwargs):
        super().__init__(**kwargs)
        self.engine = engine
        self.refresh_interval = refresh_interval

    def compose(self) -> ComposeResult:
        yield Header()
        with Container(id="items-container"):
            yield KeyItemPanel(self.engine, id="items")
        with Container(id="zone-container"):
            yield GatedZonePanel(self.engine, id="zone")
        with Container(id="log-container"):
            yield NotificationLog(id="log")
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#items-container").border_title = "Key Items"
        self.query_one("#zone-container").border_title = "Dynamis [D]"
        self.query_one("#log-container").border_title = "Notifications"

        self.engine.notifications.subscribe(self._on_notification)
        log = self.query_one("#log", NotificationLog)
        for event in self.engine.event_log.recent(10):
            log.add_event(event)

        self.refresh_panels()
        self.set_interval(self.refresh_interval, self.refresh_panels)

    def on_unmount(self) -> None:
        self.engine.notifications.unsubscribe(self._on_notification)

    def _on_notification(self, event: "Event") -> None:
        self.query_one("#log", NotificationLog).add_event(event)

    def refresh_panels(self) -> None:
        self.engine.tick()
        self.query_one("#items", KeyItemPanel).refresh_display()
        self.query_one("#zone", GatedZonePanel).refresh_display()

    def action_save(self) -> None:
        log = self.query_one("#log", NotificationLog)
        if self.engine.save():
            log.add_system("State saved")
        else:
            log.add_system("Nothing saved (no data yet or write failed)")

    def action_backup(self) -> None:
        log = self.query_one("#log", NotificationLog)
        name = self.engine.create_backup()
        log.add_system(f"Backup created: {name}" if name else "Backup failed")
