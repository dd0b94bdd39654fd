"""Status panels - key item table, gated zone cooldown and time bank."""

from __future__ import annotations
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from textual.widgets import Static, RichLog
from rich.table import Table
from rich.text import Text

from keytracker.models.status import Availability, GatedZoneStatus, ItemStatus, format_duration

if TYPE_CHECKING:
    from keytracker.engine import CooldownEngine
    from keytracker.models.events import Event


AVAILABILITY_STYLE = {
    Availability.AVAILABLE: "bold green",
    Availability.OWNED: "cyan",
    Availability.COOLDOWN: "yellow",
    Availability.UNKNOWN: "dim",
}


def build_status_table(statuses: list[ItemStatus]) -> Table:
    """Key item table shared by the REPL and the status window."""
    table = Table(title="Key Items", show_header=True, header_style="bold magenta", expand=True)
    table.add_column("Key Item", style="bold")
    table.add_column("Time Remaining", justify="right")
    table.add_column("Have", justify="center")

    for status in statuses:
        style = AVAILABILITY_STYLE[status.availability]
        table.add_row(
            status.name,
            Text(status.display_remaining(), style=style),
            Text("Yes", style="cyan") if status.owned else Text("No", style="dim"),
        )
    return table


def build_gated_zone_table(status: GatedZoneStatus) -> Table:
    """Gated zone cooldown and banked time."""
    table = Table(show_header=False, expand=True, box=None)
    table.add_column("Label", style="bold")
    table.add_column("Value", justify="right")

    if status.available:
        table.add_row("Dynamis [D] Entry", Text("Available", style="bold green"))
    else:
        table.add_row("Dynamis [D] Entry", Text(format_duration(status.remaining), style="yellow"))

    if status.entry_time:
        entered = datetime.fromtimestamp(status.entry_time).strftime("%Y-%m-%d %H:%M:%S")
        table.add_row("Last Entry", Text(entered, style="dim"))

    if status.time_bank_value > 0:
        style = "green" if status.time_bank_covers_cooldown or status.available else "yellow"
        table.add_row("Empty Hourglass", Text(format_duration(status.time_bank_value), style=style))
    else:
        table.add_row("Empty Hourglass", Text("No time recorded", style="dim"))

    if status.time_bank_observed_at:
        checked = datetime.fromtimestamp(status.time_bank_observed_at).strftime("%Y-%m-%d %H:%M")
        table.add_row("Last Checked", Text(checked, style="dim"))
    return table


class KeyItemPanel(Static):
    """Table of tracked key items."""

    DEFAULT_CSS = """
    KeyItemPanel {
        width: 100%;
        height: auto;
        padding: 0 1;
    }
    """

    def __init__(self, engine: Optional["CooldownEngine"] = None, **kwargs):
        super().__init__(**kwargs)
        self.engine = engine

    def refresh_display(self) -> None:
        if not self.engine:
            self.update("[dim]No tracker attached[/dim]")
            return
        self.update(build_status_table(self.engine.statuses()))


class GatedZonePanel(Static):
    """Gated zone cooldown and time bank."""

    DEFAULT_CSS = """
    GatedZonePanel {
        width: 100%;
        height: auto;
        padding: 0 1;
    }
    """

    def __init__(self, engine: Optional["CooldownEngine"] = None, **kwargs):
        super().__init__(**kwargs)
        self.engine = engine

    def refresh_display(self) -> None:
        if not self.engine:
            self.update("")
            return
        self.update(build_gated_zone_table(self.engine.gated_zone_status()))


class NotificationLog(RichLog):
    """Scrolling log of tracker notifications."""

    DEFAULT_CSS = """
    NotificationLog {
        width: 100%;
        height: 1fr;
        border: none;
    }
    """

    def __init__(self, **kwargs):
        super().__init__(highlight=False, markup=True, wrap=True, **kwargs)

    def add_event(self, event: "Event") -> None:
        self.write(f"[yellow]•[/yellow] {event.summary()}")

    def add_system(self, text: str) -> None:
        self.write(f"[dim]{text}[/dim]")
