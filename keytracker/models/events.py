"""Event schemas - chronological record of what the tracker observed."""

from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field
import uuid


class EventType(str, Enum):
    """Kinds of tracker events."""
    # Key item events
    ITEM_ACQUIRED = "item_acquired"
    ITEM_LOST = "item_lost"
    ITEM_USED = "item_used"
    COOLDOWN_STARTED = "cooldown_started"
    TIMESTAMP_FORCED = "timestamp_forced"

    # Zone events
    ZONE_CHANGED = "zone_changed"
    GATED_ZONE_ENTERED = "gated_zone_entered"

    # Time bank events
    TIME_BANK_UPDATED = "time_bank_updated"
    TIME_BANK_CONSUMED = "time_bank_consumed"

    # Storage events
    STORAGE_CHANGED = "storage_changed"
    STORAGE_REGENERATED = "storage_regenerated"
    STORAGE_TIMER_STARTED = "storage_timer_started"
    STALE_DATA_RESET = "stale_data_reset"

    # System events
    IDENTITY_CHANGED = "identity_changed"
    LOGOUT_DETECTED = "logout_detected"
    LOAD = "load"
    SAVE = "save"
    BACKUP = "backup"
    RESTORE = "restore"


class EventEffect(BaseModel):
    """A state field that an event changed."""
    field: str
    item_id: Optional[int] = None
    old_value: Any = None
    new_value: Any = None


class Event(BaseModel):
    """A recorded tracker event."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4())[:8])

    # When
    timestamp: datetime = Field(default_factory=datetime.now)
    game_time: int = 0  # unix seconds the engine attributed the event to

    # What
    event_type: EventType
    description: str

    # Related objects
    item_id: Optional[int] = None
    zone_id: Optional[int] = None

    # Effects
    effects: list[EventEffect] = Field(default_factory=list)

    metadata: dict[str, Any] = Field(default_factory=dict)

    # Whether this should be announced to the player
    notify: bool = False

    def summary(self) -> str:
        """One line: when it happened and what."""
        when = datetime.fromtimestamp(self.game_time).strftime("%Y-%m-%d %H:%M:%S") if self.game_time else "-"
        return f"[{when}] {self.description}"

    def detailed(self) -> str:
        """The summary line plus every field change."""
        header = f"{self.summary()} ({self.event_type.value})"
        changes = [
            f"    {e.field}{f'[{e.item_id}]' if e.item_id is not None else ''}: {e.old_value} -> {e.new_value}"
            for e in self.effects
        ]
        return "\n".join([header, *changes])


class EventLog(BaseModel):
    """Bounded event history; the oldest entries fall off past max_events."""
    events: list[Event] = Field(default_factory=list)
    max_events: int = 500

    def add(self, event: Event) -> None:
        self.events.append(event)
        overflow = len(self.events) - self.max_events
        if overflow > 0:
            del self.events[:overflow]

    def get_recent(self, count: int = 10) -> list[Event]:
        return self.events[-count:] if count > 0 else []

    def get_by_item(self, item_id: int) -> list[Event]:
        return [e for e in self.events if e.item_id == item_id]

    def summary(self, count: int = 10, detailed: bool = False) -> str:
        """Recent events, one per line (or with their effects when detailed)."""
        recent = self.get_recent(count)
        if not recent:
            return "No events recorded."
        return "\n".join(e.detailed() if detailed else e.summary() for e in recent)
