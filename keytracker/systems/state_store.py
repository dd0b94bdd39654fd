"""Cooldown state store - invariant-preserving access to the current CooldownState."""

from __future__ import annotations
import logging
from typing import Any, Optional

from keytracker.models.events import Event, EventEffect, EventType
from keytracker.models.items import ItemCatalog, TrackedItem, TWENTY_HOURS
from keytracker.models.state import CooldownState, GATED_ZONE_COOLDOWN, STORAGE_CAPACITY

logger = logging.getLogger(__name__)

# A regeneration timer older than this is treated as stale while running
STORAGE_TIMER_STALE_AFTER = 86400


def to_unix(value: Any) -> int:
    """Coerce a time or counter value to a non-negative int (0 if unusable)."""
    if isinstance(value, bool):
        return int(value)
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, number)


class CooldownStateStore:
    """Owns the single current CooldownState.

    Setters never raise: unknown item ids are ignored and negative or
    non-numeric values are clamped to 0. Every accepted write bumps
    ``revision`` so readers can tell when cached views are out of date.
    """

    def __init__(self, catalog: ItemCatalog, state: Optional[CooldownState] = None):
        self.catalog = catalog
        self._state = state if state is not None else CooldownState()
        self.revision = 0

    @property
    def state(self) -> CooldownState:
        return self._state

    def replace(self, state: CooldownState) -> None:
        """Swap in a freshly loaded state."""
        self._state = state
        self.prune_untracked()
        self._touch()

    def reset(self) -> None:
        """Replace the state with the all-zero default."""
        self._state = CooldownState()
        self._touch()

    def _touch(self) -> None:
        self.revision += 1

    def prune_untracked(self) -> list[int]:
        """Drop ids that are not in the catalog. Returns the dropped ids."""
        dropped = sorted(
            {i for i in self._state.timestamps if i not in self.catalog}
            | {i for i in self._state.owned if i not in self.catalog}
        )
        for item_id in dropped:
            self._state.timestamps.pop(item_id, None)
            self._state.owned.pop(item_id, None)
        if dropped:
            logger.debug("Removed untracked key items from state: %s", dropped)
        return dropped

    # ------------------------------------------------------------------
    # Per-item accessors
    # ------------------------------------------------------------------

    def get_timestamp(self, item_id: int) -> int:
        return self._state.timestamps.get(item_id, 0)

    def set_timestamp(self, item_id: int, timestamp: Any) -> bool:
        """Set the cooldown start for an item. Returns False for unknown ids."""
        if item_id not in self.catalog:
            logger.debug("Ignoring timestamp for untracked item %s", item_id)
            return False
        self._state.timestamps[item_id] = to_unix(timestamp)
        self._touch()
        return True

    def is_owned(self, item_id: int) -> bool:
        return self._state.owned.get(item_id) is True

    def set_owned(self, item_id: int, held: bool) -> bool:
        if item_id not in self.catalog:
            logger.debug("Ignoring ownership for untracked item %s", item_id)
            return False
        self._state.owned[item_id] = bool(held)
        self._touch()
        return True

    def remaining(self, item_id: int, now: int) -> Optional[int]:
        """Seconds left on the cooldown, or None when it was never started."""
        item = self.catalog.get(item_id)
        timestamp = self.get_timestamp(item_id)
        if item is None or timestamp <= 0:
            return None
        return max(0, timestamp + item.cooldown - now)

    def is_available(self, item_id: int, now: int) -> bool:
        """Whether the item can be picked up again.

        Never-observed items are not available: "unknown" is distinct from
        "ready". Storage-counted items are available while storage holds one.
        """
        item = self.catalog.get(item_id)
        if item is None:
            return False
        if item.is_storage_counted:
            return self._state.storage_count > 0
        timestamp = self.get_timestamp(item_id)
        if timestamp <= 0:
            return False
        return now >= timestamp + item.cooldown

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def get_storage(self) -> tuple[int, int]:
        """Return (count, regeneration timer start)."""
        return self._state.storage_count, self._state.storage_timer

    def set_storage(self, count: Any = None, timer: Any = None) -> None:
        if count is not None:
            self._state.storage_count = min(STORAGE_CAPACITY, to_unix(count))
        if timer is not None:
            self._state.storage_timer = to_unix(timer)
        self._touch()

    def _storage_item(self) -> Optional[TrackedItem]:
        for item in self.catalog:
            if item.is_storage_counted:
                return item
        return None

    @property
    def storage_cycle(self) -> int:
        item = self._storage_item()
        return item.cooldown if item else TWENTY_HOURS

    def storage_regeneration_remaining(self, now: int) -> Optional[int]:
        """Seconds until the next unit regenerates, None if full or unknown."""
        count, timer = self.get_storage()
        if count >= STORAGE_CAPACITY or timer <= 0:
            return None
        elapsed = now - timer
        if elapsed > STORAGE_TIMER_STALE_AFTER:
            return None
        return max(0, self.storage_cycle - elapsed)

    def regenerate_storage(self, now: int) -> list[Event]:
        """Advance the storage regeneration cycle to ``now``."""
        events: list[Event] = []
        count, timer = self.get_storage()
        if timer <= 0 or count >= STORAGE_CAPACITY:
            return events

        elapsed = now - timer
        if elapsed > STORAGE_TIMER_STALE_AFTER:
            self.set_storage(timer=0)
            events.append(Event(
                event_type=EventType.STALE_DATA_RESET,
                description="Storage regeneration timer is stale, resetting",
                game_time=now,
                effects=[EventEffect(field="storage_timer", old_value=timer, new_value=0)],
            ))
            return events

        if elapsed >= self.storage_cycle:
            new_count = count + 1
            self.set_storage(count=new_count, timer=now)
            item = self._storage_item()
            events.append(Event(
                event_type=EventType.STORAGE_REGENERATED,
                description=f"{item.name if item else 'Storage item'} regenerated: {new_count}/{STORAGE_CAPACITY}",
                item_id=item.id if item else None,
                game_time=now,
                effects=[EventEffect(field="storage_count", old_value=count, new_value=new_count)],
            ))
        return events

    def observe_storage_count(self, count: Any, now: int) -> list[Event]:
        """Apply a storage count reported by the server."""
        events: list[Event] = []
        new_count = min(STORAGE_CAPACITY, to_unix(count))
        previous, _ = self.get_storage()
        item = self._storage_item()

        if new_count > previous:
            if item is not None and self.get_timestamp(item.id) <= 0 and not self.is_owned(item.id):
                # Acquisition time is unknown, so only ownership is recorded
                self.set_owned(item.id, True)
                events.append(Event(
                    event_type=EventType.ITEM_ACQUIRED,
                    description=f"{item.name} storage increased but exact acquisition time unknown",
                    item_id=item.id,
                    game_time=now,
                    notify=True,
                ))
        elif new_count < previous and previous >= STORAGE_CAPACITY:
            self.set_storage(timer=now)
            events.append(Event(
                event_type=EventType.STORAGE_TIMER_STARTED,
                description="Storage space available - regeneration timer started",
                item_id=item.id if item else None,
                game_time=now,
                effects=[EventEffect(field="storage_timer", new_value=now)],
            ))

        self.set_storage(count=new_count)
        if new_count != previous:
            events.append(Event(
                event_type=EventType.STORAGE_CHANGED,
                description=f"Storage count {previous} -> {new_count}",
                item_id=item.id if item else None,
                game_time=now,
                effects=[EventEffect(field="storage_count", old_value=previous, new_value=new_count)],
            ))
        return events

    # ------------------------------------------------------------------
    # Gated zone
    # ------------------------------------------------------------------

    def get_gated_zone(self) -> tuple[int, int]:
        """Return (entry time, ready time)."""
        return self._state.gated_zone_entry_time, self._state.gated_zone_ready_time

    def set_gated_zone(self, entry_time: Any, ready_time: Any = None) -> None:
        """Record a gated zone entry; ready time defaults to entry + 60h."""
        entry = to_unix(entry_time)
        if ready_time is None:
            ready = entry + GATED_ZONE_COOLDOWN if entry else 0
        else:
            ready = to_unix(ready_time)
        if entry and ready < entry:
            ready = entry
        self._state.gated_zone_entry_time = entry
        self._state.gated_zone_ready_time = ready
        self._touch()

    def gated_zone_remaining(self, now: int) -> Optional[int]:
        """Seconds until the gated zone can be entered again, None if never entered."""
        entry, ready = self.get_gated_zone()
        if entry <= 0:
            return None
        return max(0, ready - now)

    def is_gated_zone_available(self, now: int) -> bool:
        remaining = self.gated_zone_remaining(now)
        return remaining is None or remaining <= 0

    # ------------------------------------------------------------------
    # Time bank
    # ------------------------------------------------------------------

    def get_time_bank(self) -> tuple[int, int]:
        """Return (banked seconds, when the value was last observed)."""
        return self._state.time_bank_value, self._state.time_bank_observed_at

    def set_time_bank(self, value: Any, observed_at: Any = None) -> None:
        self._state.time_bank_value = to_unix(value)
        if observed_at is not None:
            self._state.time_bank_observed_at = to_unix(observed_at)
        self._touch()

    def time_bank_remaining(self) -> Optional[int]:
        """Banked seconds, or None when nothing is banked."""
        value, _ = self.get_time_bank()
        return value if value > 0 else None
