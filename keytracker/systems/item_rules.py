"""Item rules - per-policy mapping of acquisition, loss and usage to cooldown state.

Rules are looked up once by the item's AcquisitionPolicy; no rule compares
item ids directly.
"""

from __future__ import annotations
from enum import Enum
from typing import Callable

from keytracker.models.events import Event, EventEffect, EventType
from keytracker.models.items import AcquisitionPolicy, TrackedItem
from keytracker.systems.state_store import CooldownStateStore


class OwnershipChange(str, Enum):
    ACQUIRED = "acquired"
    LOST = "lost"


Rule = Callable[[TrackedItem, OwnershipChange, CooldownStateStore, int], list[Event]]


def _owned_event(item: TrackedItem, held: bool, now: int, description: str, notify: bool = False) -> Event:
    return Event(
        event_type=EventType.ITEM_ACQUIRED if held else EventType.ITEM_LOST,
        description=description,
        item_id=item.id,
        game_time=now,
        notify=notify,
        effects=[EventEffect(field="owned", item_id=item.id, old_value=not held, new_value=held)],
    )


def _cooldown_event(
    item: TrackedItem,
    store: CooldownStateStore,
    now: int,
    description: str,
    event_type: EventType = EventType.COOLDOWN_STARTED,
) -> Event:
    return Event(
        event_type=event_type,
        description=description,
        item_id=item.id,
        game_time=now,
        notify=True,
        effects=[EventEffect(
            field="timestamps",
            item_id=item.id,
            old_value=store.get_timestamp(item.id),
            new_value=now,
        )],
    )


def _timestamp_on_acquire(item: TrackedItem, change: OwnershipChange, store: CooldownStateStore, now: int) -> list[Event]:
    """Cooldown starts when the item is obtained and keeps running after loss."""
    if change == OwnershipChange.ACQUIRED:
        events = [
            _owned_event(item, True, now, f"Acquired tracked key item: {item.name}", notify=True),
            _cooldown_event(item, store, now, f"{item.name} acquired - cooldown started"),
        ]
        store.set_owned(item.id, True)
        store.set_timestamp(item.id, now)
        return events

    store.set_owned(item.id, False)
    return [_owned_event(item, False, now, f"{item.name} lost - cooldown continues from acquisition")]


def _timestamp_on_loss(item: TrackedItem, change: OwnershipChange, store: CooldownStateStore, now: int) -> list[Event]:
    """Cooldown starts when the item leaves the inventory (loss stands in for use)."""
    if change == OwnershipChange.ACQUIRED:
        store.set_owned(item.id, True)
        return [_owned_event(item, True, now, f"Acquired {item.name} - cooldown will start when used", notify=True)]

    events = [
        _owned_event(item, False, now, f"{item.name} lost"),
        _cooldown_event(item, store, now, f"{item.name} used - cooldown started"),
    ]
    store.set_owned(item.id, False)
    store.set_timestamp(item.id, now)
    return events


def _storage_counted(item: TrackedItem, change: OwnershipChange, store: CooldownStateStore, now: int) -> list[Event]:
    """Only the held flag is tracked; availability comes from the storage count."""
    held = change == OwnershipChange.ACQUIRED
    store.set_owned(item.id, held)
    verb = "acquired" if held else "lost"
    return [_owned_event(item, held, now, f"{item.name} {verb}", notify=held)]


RULES: dict[AcquisitionPolicy, Rule] = {
    AcquisitionPolicy.TIMESTAMP_ON_ACQUIRE: _timestamp_on_acquire,
    AcquisitionPolicy.TIMESTAMP_ON_LOSS: _timestamp_on_loss,
    AcquisitionPolicy.NO_TIMESTAMP_UNTIL_USED: _timestamp_on_loss,
    AcquisitionPolicy.STORAGE_COUNTED: _storage_counted,
}


def apply(item: TrackedItem, change: OwnershipChange, store: CooldownStateStore, now: int) -> list[Event]:
    """Apply an ownership change for one item and return the resulting events."""
    if change == OwnershipChange.ACQUIRED and store.get_timestamp(item.id) > 0:
        # Duplicate or repeated acquire must not restart a recorded cooldown
        store.set_owned(item.id, True)
        return [_owned_event(item, True, now, f"{item.name} already tracked - marked as held")]

    return RULES[item.policy](item, change, store, now)


def apply_usage(item: TrackedItem, store: CooldownStateStore, now: int) -> list[Event]:
    """Record an implicit use of a held item: it is consumed and its cooldown starts."""
    if not store.is_owned(item.id):
        return []
    events = [_cooldown_event(item, store, now, f"{item.name} used - cooldown started", EventType.ITEM_USED)]
    store.set_owned(item.id, False)
    store.set_timestamp(item.id, now)
    return events


def ownership_change(was_held: bool, is_held: bool) -> OwnershipChange | None:
    """Classify a flag transition, None when nothing changed."""
    if was_held == is_held:
        return None
    return OwnershipChange.ACQUIRED if is_held else OwnershipChange.LOST
