"""Zone transition detector - turns zone ids into compound zone events.

Two independent tables are checked on every real transition:

* gated zone entrances: entering a gated zone from its lobby restarts the
  shared 60 hour re-entry cooldown, spending banked time if a cooldown
  was still running;
* transit routes: leaving a staging zone for one of its destinations means
  a held teleport item was used.
"""

from __future__ import annotations
import logging
from typing import Optional

from keytracker.models.events import Event, EventEffect, EventType
from keytracker.models.items import SHINY_RAKAZNAR_PLATE
from keytracker.models.state import GATED_ZONE_COOLDOWN, ZoneTransitionRecord
from keytracker.systems import item_rules
from keytracker.systems.event_bus import EventBus
from keytracker.systems.state_store import CooldownStateStore

logger = logging.getLogger(__name__)

# Lobby zone -> gated zone
GATED_ZONE_ENTRANCES: dict[int, int] = {
    230: 294,  # Southern San d'Oria -> Dynamis - San d'Oria [D]
    234: 295,  # Bastok Mines -> Dynamis - Bastok [D]
    239: 296,  # Windurst Walls -> Dynamis - Windurst [D]
    243: 297,  # Ru'Lude Gardens -> Dynamis - Jeuno [D]
}

# Staging zone -> (item used, destination zones)
TRANSIT_ROUTES: dict[int, tuple[int, frozenset[int]]] = {
    267: (SHINY_RAKAZNAR_PLATE, frozenset({275, 133, 189})),  # Kamihr Drifts -> Outer Ra'Kaznar
}


class ZoneTransitionDetector:
    """Tracks (previous, current) zone and fires compound zone events."""

    def __init__(
        self,
        store: CooldownStateStore,
        bus: Optional[EventBus] = None,
        gated_entrances: Optional[dict[int, int]] = None,
        transit_routes: Optional[dict[int, tuple[int, frozenset[int]]]] = None,
    ):
        self.store = store
        self.bus = bus or EventBus()
        self.gated_entrances = GATED_ZONE_ENTRANCES if gated_entrances is None else gated_entrances
        self.transit_routes = TRANSIT_ROUTES if transit_routes is None else transit_routes
        self.record = ZoneTransitionRecord()

    @property
    def current_zone(self) -> Optional[int]:
        return self.record.current_zone_id

    @property
    def previous_zone(self) -> Optional[int]:
        return self.record.previous_zone_id

    def observe(self, zone_id: int, now: int) -> list[Event]:
        """Process a zone id from the wire. Repeats of the current zone are ignored."""
        if zone_id == self.record.current_zone_id:
            logger.debug("Zone unchanged: %s", zone_id)
            return []

        previous = self.record.current_zone_id
        self.record = ZoneTransitionRecord(previous_zone_id=previous, current_zone_id=zone_id)
        logger.debug("Zone changed from %s to %s", previous if previous is not None else "unknown", zone_id)

        events = [Event(
            event_type=EventType.ZONE_CHANGED,
            description=f"Zone changed to {zone_id}",
            zone_id=zone_id,
            game_time=now,
            metadata={"previous_zone_id": previous},
        )]
        events.extend(self._check_gated_entry(previous, zone_id, now))
        events.extend(self._check_transit_usage(previous, zone_id, now))

        self.bus.publish(zone_id)
        return events

    def is_gated_entry(self, previous: Optional[int], current: int) -> bool:
        return previous is not None and self.gated_entrances.get(previous) == current

    def _check_gated_entry(self, previous: Optional[int], current: int, now: int) -> list[Event]:
        if not self.is_gated_entry(previous, current):
            return []

        events: list[Event] = []
        entry_time, ready_time = self.store.get_gated_zone()
        existing_remaining = max(0, ready_time - now)

        if existing_remaining > 0:
            banked, _ = self.store.get_time_bank()
            consumed = min(banked, existing_remaining)
            if consumed > 0:
                self.store.set_time_bank(banked - consumed, observed_at=now)
                events.append(Event(
                    event_type=EventType.TIME_BANK_CONSUMED,
                    description=(
                        f"Entered gated zone with cooldown - consumed {consumed // 3600}:"
                        f"{(consumed % 3600) // 60:02d} of banked time"
                    ),
                    zone_id=current,
                    game_time=now,
                    notify=True,
                    effects=[EventEffect(field="time_bank_value", old_value=banked, new_value=banked - consumed)],
                    metadata={"consumed": consumed, "cooldown_remaining": existing_remaining},
                ))
                if banked - consumed <= 0:
                    logger.warning("Banked time depleted")
            else:
                logger.info("Entered gated zone with cooldown - no banked time to consume")

        self.store.set_gated_zone(now, now + GATED_ZONE_COOLDOWN)
        events.append(Event(
            event_type=EventType.GATED_ZONE_ENTERED,
            description=f"Gated zone {current} entered - new 60-hour cooldown started",
            zone_id=current,
            game_time=now,
            notify=True,
            effects=[
                EventEffect(field="gated_zone_entry_time", old_value=entry_time, new_value=now),
                EventEffect(field="gated_zone_ready_time", old_value=ready_time, new_value=now + GATED_ZONE_COOLDOWN),
            ],
            metadata={"lobby_zone_id": previous, "bypassed_cooldown": existing_remaining > 0},
        ))
        return events

    def _check_transit_usage(self, previous: Optional[int], current: int, now: int) -> list[Event]:
        route = self.transit_routes.get(previous) if previous is not None else None
        if route is None:
            return []
        item_id, destinations = route
        if current not in destinations:
            return []
        item = self.store.catalog.get(item_id)
        if item is None:
            return []
        events = item_rules.apply_usage(item, self.store, now)
        for event in events:
            event.zone_id = current
        if events:
            logger.debug("%s usage detected - zone transition %s -> %s", item.name, previous, current)
        return events
