"""Main entry point - REPL for inspecting and correcting key item cooldowns."""

from __future__ import annotations
import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory

from keytracker import __version__
from keytracker.capture import replay
from keytracker.config import TrackerConfig, configure_logging, set_log_level
from keytracker.engine import CooldownEngine
from keytracker.models.events import Event
from keytracker.models.status import format_duration
from keytracker.tui.panels import build_gated_zone_table, build_status_table


console = Console()


class ZoneNotifier:
    """Announces items that are ready for pickup whenever the zone changes."""

    def __init__(self, engine: CooldownEngine, enabled: bool = True):
        self.engine = engine
        self.enabled = enabled

    def __call__(self, zone_id: int) -> None:
        if not self.enabled:
            return
        for status in self.engine.available_for_pickup():
            console.print(f"[bold green]Keytracker:[/bold green] {status.name} is ready for pickup")

    def toggle(self) -> bool:
        self.enabled = not self.enabled
        return self.enabled


def announce(event: Event) -> None:
    """Print notification-worthy events as they happen."""
    console.print(f"[bold green]Keytracker:[/bold green] {event.description}")


def print_help() -> None:
    """Print help information."""
    table = Table(title="Commands", show_header=True, header_style="bold magenta")
    table.add_column("Command", style="cyan")
    table.add_column("Description")

    commands = [
        ("status", "Show key items, Dynamis [D] cooldown and banked time"),
        ("check", "List key items ready for pickup"),
        ("fix <item>", "Start an item's cooldown now (for missed frames)"),
        ("hourglass <seconds>", "Set the Empty Hourglass time by hand"),
        ("reset_hourglass", "Reset the Empty Hourglass time to 0"),
        ("notify", "Toggle ready-for-pickup alerts on zone change"),
        ("debug", "Toggle debug logging"),
        ("events \\[n]", "Show recent events (default: 10)"),
        ("replay <file>", "Feed a frame capture into the tracker"),
        ("tick", "Advance storage regeneration to now"),
        ("save", "Save state now"),
        ("backup create|list|restore <name>|info", "Backup commands"),
        ("help", "Show this help"),
        ("quit", "Exit"),
    ]

    for cmd, desc in commands:
        table.add_row(cmd, desc)

    console.print(table)


def handle_status(engine: CooldownEngine) -> None:
    console.print(build_status_table(engine.statuses()))
    console.print(Panel(build_gated_zone_table(engine.gated_zone_status()), title="Dynamis [D]", border_style="dim"))
    identity = engine.identity if engine.identity is not None else "unknown"
    console.print(f"[dim]Identity: {identity} • State file: {engine.state_path}[/dim]")


def handle_check(engine: CooldownEngine, debug: bool = False) -> None:
    ready = engine.available_for_pickup()
    if ready:
        for status in ready:
            console.print(f"[green]{status.name} is ready for pickup[/green]")
    else:
        console.print("[dim]No key items are currently available for pickup.[/dim]")

    if debug:
        for status in engine.statuses():
            console.print(
                f"  [dim]{status.name}: {status.availability.value} "
                f"(TS:{status.timestamp}, Rem:{status.remaining}, Own:{status.owned})[/dim]"
            )


def handle_fix(engine: CooldownEngine, parts: list[str]) -> None:
    names = ", ".join(item.name for item in engine.catalog)
    if len(parts) < 2:
        console.print("[red]Usage: fix <item>[/red]")
        console.print(f"[yellow]Available items: {names}[/yellow]")
        return

    item = engine.find_item(" ".join(parts[1:]))
    if item is None:
        console.print(f"[red]Unknown item: {' '.join(parts[1:])}[/red]")
        console.print(f"[yellow]Available items: {names}[/yellow]")
        return

    if engine.is_owned(item.id):
        console.print(f"[yellow]{item.name} is already in your inventory[/yellow]")
        return

    if engine.force_timestamp(item.id):
        console.print(f"[green]Manual acquisition triggered for {item.name} - cooldown started[/green]")
    else:
        console.print(f"[red]Failed to set timestamp for {item.name}[/red]")


def handle_hourglass(engine: CooldownEngine, parts: list[str]) -> None:
    if len(parts) < 2:
        console.print("[red]Usage: hourglass <time_in_seconds>[/red]")
        console.print("[dim]Example: hourglass 7200 (for 2 hours)[/dim]")
        return

    if not engine.set_time_bank(parts[1]):
        console.print("[red]Invalid time value. Please provide time in seconds.[/red]")
        return

    seconds = engine.time_bank_value()
    console.print(f"[green]Hourglass time set: {format_duration(seconds)} ({seconds} seconds)[/green]")
    console.print("[dim]Time is consumed automatically when entering Dynamis [D] on cooldown[/dim]")


def handle_backup(engine: CooldownEngine, parts: list[str]) -> None:
    sub = parts[1].lower() if len(parts) > 1 else ""

    if sub == "create":
        name = engine.create_backup()
        if name:
            console.print(f"[green]Backup created: {name}[/green]")
        else:
            console.print("[red]Failed to create backup[/red]")

    elif sub == "list":
        backups = engine.list_backups()
        if backups:
            console.print("[bold]Available backups:[/bold]")
            for i, name in enumerate(backups, start=1):
                console.print(f"  {i}. {name}")
        else:
            console.print("[dim]No backups found[/dim]")

    elif sub == "restore":
        if len(parts) < 3:
            console.print("[red]Usage: backup restore <filename>[/red]")
            return
        if engine.restore_backup(parts[2]):
            console.print(f"[green]Restored from backup: {parts[2]}[/green]")
        else:
            console.print(f"[red]Failed to restore from backup: {parts[2]}[/red]")

    elif sub == "info":
        rotator = engine.rotator
        if rotator is None:
            console.print("[dim]Backups are disabled[/dim]")
            return
        console.print("[bold]Backup System Information:[/bold]")
        console.print(f"  • Automatic backups: every {rotator.interval // 60} minutes")
        console.print(f"  • Retention: {rotator.retention} backups")
        console.print(f"  • Location: {rotator.backup_dir}")
        console.print("  • Format: keytracker_backup_<identity>_<timestamp>.json")

    else:
        console.print("[red]Usage: backup create|list|restore <name>|info[/red]")


def handle_events(engine: CooldownEngine, parts: list[str], debug: bool = False) -> None:
    count = 10
    if len(parts) > 1:
        try:
            count = int(parts[1])
        except ValueError:
            console.print("[red]Usage: events \\[n][/red]")
            return
    console.print(engine.event_log.summary(count, detailed=debug), markup=False)


def handle_replay(engine: CooldownEngine, parts: list[str]) -> None:
    if len(parts) < 2:
        console.print("[red]Usage: replay <file>[/red]")
        return
    path = Path(parts[1]).expanduser()
    if not path.is_file():
        console.print(f"[red]No such capture: {path}[/red]")
        return
    count, events = replay(engine, path)
    console.print(f"[green]Replayed {count} frames ({len(events)} events)[/green]")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="keytracker", description="Key item cooldown tracker")
    parser.add_argument("--identity", type=int, help="Player id used to name the state file")
    parser.add_argument("--data-dir", type=Path, help="Directory for state files and backups")
    parser.add_argument("--replay", type=Path, help="Replay a frame capture before starting")
    parser.add_argument("--tui", action="store_true", help="Open the status window instead of the REPL")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def create_engine(config: TrackerConfig) -> CooldownEngine:
    engine = CooldownEngine.from_config(config)
    engine.load()
    return engine


def run_repl(engine: CooldownEngine, history_dir: Path) -> None:
    notifier = ZoneNotifier(engine)
    engine.zone_events.subscribe(notifier)
    engine.notifications.subscribe(announce)
    debug = False

    history_dir.mkdir(parents=True, exist_ok=True)
    session = PromptSession(
        history=FileHistory(str(history_dir / "command_history")),
        auto_suggest=AutoSuggestFromHistory(),
    )

    console.print("\n[dim]Type 'help' for commands[/dim]\n")

    while True:
        try:
            command = session.prompt("keytracker> ")

            if not command.strip():
                continue

            parts = command.strip().split()
            cmd = parts[0].lower()

            if cmd in ("quit", "exit"):
                break

            elif cmd == "help":
                print_help()

            elif cmd in ("status", "gui"):
                handle_status(engine)

            elif cmd == "check":
                handle_check(engine, debug)

            elif cmd == "fix":
                handle_fix(engine, parts)

            elif cmd in ("hourglass", "force_hourglass"):
                handle_hourglass(engine, parts)

            elif cmd == "reset_hourglass":
                engine.reset_time_bank()
                console.print("[green]Hourglass time has been reset to 0[/green]")

            elif cmd == "notify":
                enabled = notifier.toggle()
                console.print(f"Notifications {'enabled' if enabled else 'disabled'}.")

            elif cmd == "debug":
                debug = not debug
                set_log_level("DEBUG" if debug else "INFO")
                console.print(f"Debug mode {'enabled' if debug else 'disabled'}.")

            elif cmd == "events":
                handle_events(engine, parts, debug)

            elif cmd == "replay":
                handle_replay(engine, parts)

            elif cmd == "tick":
                events = engine.tick()
                console.print(f"[dim]{len(events)} events[/dim]")

            elif cmd == "save":
                if engine.save():
                    console.print(f"[green]State saved to {engine.state_path}[/green]")
                else:
                    console.print("[yellow]State not saved (nothing recorded yet, or write failed)[/yellow]")

            elif cmd == "backup":
                handle_backup(engine, parts)

            else:
                console.print("[red]Unknown command. Type 'help' for available commands.[/red]")

        except KeyboardInterrupt:
            console.print("\n[dim]Type 'quit' to exit[/dim]")

        except EOFError:
            break

        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")

    engine.save()


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    config = TrackerConfig.from_env()
    if args.identity is not None:
        config.identity = args.identity
    if args.data_dir is not None:
        config.data_dir = args.data_dir.expanduser()
    configure_logging(config.log_level, console)

    engine = create_engine(config)

    if args.replay:
        if not args.replay.is_file():
            console.print(f"[red]No such capture: {args.replay}[/red]")
            return 1
        count, _ = replay(engine, args.replay)
        console.print(f"[dim]Replayed {count} frames[/dim]")

    if args.tui:
        from keytracker.tui.app import KeyTrackerApp
        KeyTrackerApp(engine).run()
        engine.save()
        return 0

    console.print(Panel(
        f"[bold magenta]Keytracker {__version__}[/bold magenta]\n"
        f"[dim]Key item cooldown tracker • {datetime.now():%Y-%m-%d %H:%M}[/dim]",
        border_style="magenta",
    ))
    run_repl(engine, config.data_dir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
