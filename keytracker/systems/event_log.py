"""Event history - bounded record of what the engine observed and changed."""

from __future__ import annotations
from collections import Counter
from typing import Optional

from keytracker.models.events import Event, EventType, EventLog as EventLogModel


class EventLog:
    """Queryable history of tracker events, oldest first."""

    def __init__(self, max_events: int = 500) -> None:
        self._log = EventLogModel(max_events=max_events)

    def __len__(self) -> int:
        return len(self._log.events)

    @property
    def events(self) -> list[Event]:
        return self._log.events

    def record(self, events: list[Event]) -> None:
        for event in events:
            self._log.add(event)

    def recent(self, count: int = 10) -> list[Event]:
        return self._log.get_recent(count)

    def of_type(self, *event_types: EventType) -> list[Event]:
        return [e for e in self._log.events if e.event_type in event_types]

    def for_item(self, item_id: int) -> list[Event]:
        return self._log.get_by_item(item_id)

    def since(self, game_time: int) -> list[Event]:
        """Events attributed to game_time or later."""
        return [e for e in self._log.events if e.game_time >= game_time]

    def last(self, event_type: EventType) -> Optional[Event]:
        """Most recent event of one type."""
        for event in reversed(self._log.events):
            if event.event_type == event_type:
                return event
        return None

    def matching(self, text: str) -> list[Event]:
        """Case-insensitive search over descriptions."""
        needle = text.lower()
        return [e for e in self._log.events if needle in e.description.lower()]

    def summary(self, count: int = 10, detailed: bool = False) -> str:
        return self._log.summary(count, detailed)

    def report(
        self,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        item_id: Optional[int] = None,
    ) -> str:
        """Per-type counts followed by the matching events."""
        selected = [
            e for e in self._log.events
            if (start_time is None or e.game_time >= start_time)
            and (end_time is None or e.game_time <= end_time)
            and (item_id is None or e.item_id == item_id)
        ]
        if not selected:
            return "No events in range."

        counts = Counter(e.event_type.value for e in selected)
        lines = [f"{len(selected)} events"]
        lines.extend(f"  {name}: {n}" for name, n in sorted(counts.items()))
        lines.append("")
        lines.extend(e.summary() for e in selected)
        return "\n".join(lines)
