"""Cooldown engine - the context object that ties decoding, rules and persistence together.

The engine owns the only CooldownState of the process. Host capabilities
(who the player is, how to ask the server for storage data, what time it
is) are injected, so the engine can run against a live client, a capture
replay or a test.
"""

from __future__ import annotations
import logging
import time
from pathlib import Path
from typing import Any, Callable, Optional

from keytracker.config import TrackerConfig
from keytracker.models.events import Event, EventEffect, EventType
from keytracker.models.frames import (
    Frame,
    ItemOwnershipSnapshot,
    LogoutCountdown,
    StorageCountObserved,
    TimeCreditObserved,
    Unrecognized,
    ZoneChanged,
)
from keytracker.models.items import ItemCatalog, TrackedItem, default_catalog
from keytracker.models.state import CooldownState
from keytracker.models.status import GatedZoneStatus, ItemStatus
from keytracker.systems import item_rules
from keytracker.systems.backups import BackupRotator
from keytracker.systems.decoder import FrameDecoder
from keytracker.systems.event_bus import EventBus
from keytracker.systems.event_log import EventLog
from keytracker.systems.persistence import PersistenceGuard, StateRepository
from keytracker.systems.state_store import CooldownStateStore
from keytracker.systems.zone_tracker import ZoneTransitionDetector

logger = logging.getLogger(__name__)

# NPC actor id -> message id of the banked-time readout
TIME_CREDIT_SOURCES: dict[int, int] = {
    17772867: 48733,
    17720029: 49344,
    17756500: 43686,
    17736063: 49463,
}

# Logout countdown values at or below this invalidate the cached identity
LOGOUT_IMMINENT = 5

# A storage timer this old at load time is discarded as stale
STORAGE_TIMER_EXPIRED_AFTER = 604800

IdentityProvider = Callable[[], Optional[int]]


class CooldownEngine:
    """Tracks key item cooldowns for the current player."""

    def __init__(
        self,
        repository: StateRepository,
        rotator: Optional[BackupRotator] = None,
        catalog: Optional[ItemCatalog] = None,
        identity_provider: Optional[IdentityProvider] = None,
        request_storage: Optional[Callable[[], None]] = None,
        clock: Optional[Callable[[], float]] = None,
        monotonic: Callable[[], float] = time.monotonic,
        status_cache_ttl: float = 0.15,
    ):
        self.catalog = catalog or default_catalog()
        self.store = CooldownStateStore(self.catalog)
        self.decoder = FrameDecoder()
        self.zone_events = EventBus("zone_change")
        self.notifications = EventBus("notification")
        self.detector = ZoneTransitionDetector(self.store, self.zone_events)
        self.guard = PersistenceGuard()
        self.repository = repository
        self.rotator = rotator
        self.event_log = EventLog()

        self._identity_provider = identity_provider or (lambda: None)
        self._request_storage = request_storage
        self._clock = clock or time.time
        self._monotonic = monotonic

        self._identity: Optional[int] = None
        self._identity_valid = False
        self.has_completed_initial_load = False
        self._storage_requested = False

        self.status_cache_ttl = status_cache_ttl
        self._status_cache: Optional[list[ItemStatus]] = None
        self._status_cache_at = 0.0
        self._status_cache_key: tuple[Any, ...] = ()

    @classmethod
    def from_config(cls, config: TrackerConfig, **kwargs: Any) -> "CooldownEngine":
        """Build an engine with file persistence and backups under config.data_dir."""
        rotator = BackupRotator(
            config.backup_dir,
            interval=config.backup_interval,
            retention=config.backup_retention,
        )
        if config.identity is not None and "identity_provider" not in kwargs:
            kwargs["identity_provider"] = lambda: config.identity
        return cls(
            StateRepository(config.data_dir),
            rotator=rotator,
            status_cache_ttl=config.status_cache_ttl,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Identity and loading
    # ------------------------------------------------------------------

    def now(self) -> int:
        return int(self._clock())

    @property
    def identity(self) -> Optional[int]:
        return self._identity

    @property
    def state(self) -> CooldownState:
        return self.store.state

    @property
    def state_path(self) -> Path:
        return self.repository.path_for(self._identity)

    @property
    def current_zone(self) -> Optional[int]:
        return self.detector.current_zone

    def _read_identity(self) -> Optional[int]:
        try:
            identity = self._identity_provider()
        except Exception:
            logger.exception("Identity provider failed")
            return None
        if isinstance(identity, bool) or not isinstance(identity, int) or identity <= 0:
            return None
        return identity

    def invalidate_identity(self) -> None:
        """Forget the cached identity; it is re-read before the next frame."""
        self._identity_valid = False

    def load(self, now: Optional[int] = None) -> bool:
        """(Re)load state for the current identity from the durable store."""
        try:
            identity = self._read_identity()
            self._identity_valid = identity is not None
            self._switch_identity(identity, self._resolve_now(now))
            return True
        except Exception:
            logger.exception("Loading state failed")
            return False

    def _sync_identity(self, now: int) -> None:
        if self._identity_valid and self.has_completed_initial_load:
            return
        identity = self._read_identity()
        if identity is None:
            return
        self._identity_valid = True
        if not self.has_completed_initial_load or identity != self._identity:
            self._switch_identity(identity, now)

    def _switch_identity(self, identity: Optional[int], now: int) -> None:
        previous = self._identity
        if self.has_completed_initial_load and identity != previous:
            logger.info("Identity change detected: %s -> %s", previous, identity)
            self._record([Event(
                event_type=EventType.IDENTITY_CHANGED,
                description=f"Identity changed from {previous} to {identity}",
                game_time=now,
                metadata={"previous": previous, "identity": identity},
            )])
        # Reset before the path is re-derived so nothing lands in a half-switched state
        self.store.reset()
        self._identity = identity
        self._load_current(now)

    def _load_current(self, now: int) -> None:
        state = self.repository.load(self._identity)
        self.store.replace(state)

        events: list[Event] = []
        _, timer = self.store.get_storage()
        if timer > 0 and now - timer > STORAGE_TIMER_EXPIRED_AFTER:
            self.store.set_storage(timer=0)
            events.append(Event(
                event_type=EventType.STALE_DATA_RESET,
                description="Storage regeneration timer is older than 7 days, resetting",
                game_time=now,
                effects=[EventEffect(field="storage_timer", old_value=timer, new_value=0)],
            ))

        self.has_completed_initial_load = True
        events.append(Event(
            event_type=EventType.LOAD,
            description=f"Loaded state from {self.state_path.name}",
            game_time=now,
            metadata={"identity": self._identity},
        ))
        self._record(events)

    # ------------------------------------------------------------------
    # Frame handling
    # ------------------------------------------------------------------

    def _resolve_now(self, now: Optional[float]) -> int:
        return self.now() if now is None else int(now)

    def handle_frame(self, frame_id: int, data: bytes, now: Optional[float] = None) -> list[Event]:
        """Decode and apply one incoming frame. Never raises."""
        try:
            at = self._resolve_now(now)
            self._sync_identity(at)
            frame = self.decoder.decode(frame_id, data)
            return self.apply_frame(frame, at)
        except Exception:
            logger.exception("Failed to handle frame 0x%03X", frame_id)
            return []

    def apply_frame(self, frame: Frame, now: int) -> list[Event]:
        """Apply an already decoded frame."""
        revision = self.store.revision

        if isinstance(frame, ItemOwnershipSnapshot):
            events = self._apply_snapshot(frame, now)
        elif isinstance(frame, ZoneChanged):
            events = self._apply_zone(frame, now)
        elif isinstance(frame, TimeCreditObserved):
            events = self._apply_time_credit(frame, now)
        elif isinstance(frame, StorageCountObserved):
            events = self.store.observe_storage_count(frame.count, now)
        elif isinstance(frame, LogoutCountdown):
            events = self._apply_logout(frame, now)
        else:
            if isinstance(frame, Unrecognized):
                logger.debug("Ignoring frame 0x%03X: %s", frame.frame_id, frame.reason)
            events = []

        if self.store.revision != revision:
            self._persist()
        self._record(events)
        return events

    def _apply_snapshot(self, snapshot: ItemOwnershipSnapshot, now: int) -> list[Event]:
        events: list[Event] = []
        for item_id in self.catalog.ids_in_block(snapshot.first_id):
            item = self.catalog.get(item_id)
            change = item_rules.ownership_change(self.store.is_owned(item_id), snapshot.is_held(item_id))
            if item is None or change is None:
                continue
            logger.debug("Key item %s: %s", item.name, change.value)
            events.extend(item_rules.apply(item, change, self.store, now))
            if item.is_storage_counted and change == item_rules.OwnershipChange.ACQUIRED:
                self._request_storage_data()
        return events

    def _apply_zone(self, frame: ZoneChanged, now: int) -> list[Event]:
        events = self.detector.observe(frame.zone_id, now)
        if events and not self._storage_requested:
            self._request_storage_data()
            self._storage_requested = True
        return events

    def _apply_time_credit(self, frame: TimeCreditObserved, now: int) -> list[Event]:
        expected = TIME_CREDIT_SOURCES.get(frame.actor_id)
        if expected is None or frame.message_id != expected:
            logger.debug(
                "Message %s from actor %s is not a time bank readout",
                frame.message_id, frame.actor_id,
            )
            return []

        old_value, _ = self.store.get_time_bank()
        self.store.set_time_bank(frame.value, observed_at=now)
        if frame.value == old_value:
            logger.debug("Time bank reading %s unchanged", frame.value)
            return []
        return [Event(
            event_type=EventType.TIME_BANK_UPDATED,
            description=f"Empty Hourglass time updated: {frame.value} seconds",
            game_time=now,
            notify=True,
            effects=[EventEffect(field="time_bank_value", old_value=old_value, new_value=frame.value)],
            metadata={"actor_id": frame.actor_id, "message_id": frame.message_id},
        )]

    def _apply_logout(self, frame: LogoutCountdown, now: int) -> list[Event]:
        if frame.remaining > LOGOUT_IMMINENT:
            return []
        logger.debug("Logout imminent (countdown=%s), clearing cached identity", frame.remaining)
        self.invalidate_identity()
        return [Event(
            event_type=EventType.LOGOUT_DETECTED,
            description="Logout detected - identity will be re-read",
            game_time=now,
            metadata={"countdown": frame.remaining},
        )]

    def _request_storage_data(self) -> None:
        if self._request_storage is None:
            return
        try:
            self._request_storage()
        except Exception:
            logger.exception("Storage data request failed")

    def tick(self, now: Optional[float] = None) -> list[Event]:
        """Advance time-driven state (storage regeneration)."""
        try:
            at = self._resolve_now(now)
            revision = self.store.revision
            events = self.store.regenerate_storage(at)
            if self.store.revision != revision:
                self._persist()
            self._record(events)
            return events
        except Exception:
            logger.exception("Tick failed")
            return []

    def _record(self, events: list[Event]) -> None:
        self.event_log.record(events)
        for event in events:
            if event.notify:
                self.notifications.publish(event)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self) -> bool:
        """Write the current state if the guard allows it."""
        try:
            state = self.store.state
            if not self.guard.should_save(state, self.has_completed_initial_load):
                return False
            saved = self.repository.save(state, self._identity)
        except Exception:
            logger.exception("Saving state failed")
            return False

        if not saved:
            return False

        self._record([Event(
            event_type=EventType.SAVE,
            description=f"Saved state to {self.state_path.name}",
            game_time=self.now(),
            metadata={"identity": self._identity},
        )])

        if self.rotator is not None:
            try:
                self.rotator.maybe_backup(self.state_path, self._identity)
            except Exception:
                logger.exception("Scheduled backup failed")
        return True

    def _persist(self) -> None:
        self.save()

    def create_backup(self) -> Optional[str]:
        """Snapshot the durable state file now. Returns the backup name."""
        if self.rotator is None:
            return None
        try:
            path = self.rotator.create_backup(self.state_path, self._identity)
        except Exception:
            logger.exception("Manual backup failed")
            return None
        if path is None:
            return None
        self._record([Event(
            event_type=EventType.BACKUP,
            description=f"Backup created: {path.name}",
            game_time=self.now(),
        )])
        return path.name

    def list_backups(self) -> list[str]:
        if self.rotator is None:
            return []
        try:
            return self.rotator.list_backups(self._identity if self._identity is not None else 0)
        except OSError as e:
            logger.error("Could not list backups: %s", e)
            return []

    def restore_backup(self, name: str) -> bool:
        """Swap a named backup in as the current state."""
        if self.rotator is None:
            return False
        try:
            if not self.rotator.restore(name, self.state_path, self._identity):
                return False
            now = self.now()
            self.store.reset()
            self._load_current(now)
        except Exception:
            logger.exception("Restore of %s failed", name)
            return False
        self._record([Event(
            event_type=EventType.RESTORE,
            description=f"Restored state from {name}",
            game_time=self.now(),
        )])
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_item(self, query: str) -> Optional[TrackedItem]:
        return self.catalog.find(query)

    def get_timestamp(self, item_id: int) -> int:
        return self.store.get_timestamp(item_id)

    def remaining(self, item_id: int, now: Optional[float] = None) -> Optional[int]:
        return self.store.remaining(item_id, self._resolve_now(now))

    def is_available(self, item_id: int, now: Optional[float] = None) -> bool:
        return self.store.is_available(item_id, self._resolve_now(now))

    def is_owned(self, item_id: int) -> bool:
        return self.store.is_owned(item_id)

    def storage_count(self) -> int:
        return self.store.get_storage()[0]

    def storage_regeneration_remaining(self, now: Optional[float] = None) -> Optional[int]:
        return self.store.storage_regeneration_remaining(self._resolve_now(now))

    def gated_zone_entry_time(self) -> int:
        return self.store.get_gated_zone()[0]

    def gated_zone_remaining(self, now: Optional[float] = None) -> Optional[int]:
        return self.store.gated_zone_remaining(self._resolve_now(now))

    def is_gated_zone_available(self, now: Optional[float] = None) -> bool:
        return self.store.is_gated_zone_available(self._resolve_now(now))

    def time_bank_value(self) -> int:
        return self.store.get_time_bank()[0]

    def time_bank_remaining(self) -> Optional[int]:
        return self.store.time_bank_remaining()

    def time_bank_observed_at(self) -> int:
        return self.store.get_time_bank()[1]

    def statuses(self, now: Optional[float] = None) -> list[ItemStatus]:
        """Status rows for the display, cached briefly for polling callers."""
        if now is not None:
            return self._build_statuses(int(now))

        at = self.now()
        key = (self.store.revision, self._identity, at)
        fresh = self._monotonic() - self._status_cache_at < self.status_cache_ttl
        if self._status_cache is not None and fresh and key == self._status_cache_key:
            return self._status_cache

        self._status_cache = self._build_statuses(at)
        self._status_cache_at = self._monotonic()
        self._status_cache_key = key
        return self._status_cache

    def _build_statuses(self, now: int) -> list[ItemStatus]:
        count, _ = self.store.get_storage()
        rows = []
        for item in self.catalog:
            rows.append(ItemStatus(
                id=item.id,
                name=item.name,
                timestamp=self.store.get_timestamp(item.id),
                remaining=self.store.remaining(item.id, now),
                owned=self.store.is_owned(item.id),
                available=self.store.is_available(item.id, now),
                storage_count=count if item.is_storage_counted else None,
                regeneration_remaining=(
                    self.store.storage_regeneration_remaining(now) if item.is_storage_counted else None
                ),
            ))
        return rows

    def gated_zone_status(self, now: Optional[float] = None) -> GatedZoneStatus:
        at = self._resolve_now(now)
        value, observed_at = self.store.get_time_bank()
        return GatedZoneStatus(
            entry_time=self.store.get_gated_zone()[0],
            remaining=self.store.gated_zone_remaining(at),
            available=self.store.is_gated_zone_available(at),
            time_bank_value=value,
            time_bank_observed_at=observed_at,
        )

    def available_for_pickup(self, now: Optional[float] = None) -> list[ItemStatus]:
        """Items that are off cooldown and not currently held."""
        return [s for s in self.statuses(now) if s.ready_for_pickup]

    # ------------------------------------------------------------------
    # Manual corrections
    # ------------------------------------------------------------------

    def force_timestamp(self, item_id: int, timestamp: Optional[float] = None) -> bool:
        """Start an item's cooldown by hand, for frames that were missed."""
        if item_id not in self.catalog:
            return False
        at = max(0, self._resolve_now(timestamp))
        old = self.store.get_timestamp(item_id)
        self.store.set_timestamp(item_id, at)
        self.store.set_owned(item_id, True)
        self._persist()
        self._record([Event(
            event_type=EventType.TIMESTAMP_FORCED,
            description=f"Manual acquisition for {self.catalog.get(item_id).name} - cooldown started",
            item_id=item_id,
            game_time=at,
            effects=[EventEffect(field="timestamps", item_id=item_id, old_value=old, new_value=at)],
        )])
        return True

    def set_time_bank(self, value: Any, now: Optional[float] = None) -> bool:
        """Overwrite the banked time with a value read by hand."""
        try:
            seconds = int(value)
        except (TypeError, ValueError):
            return False
        if seconds < 0:
            return False
        at = self._resolve_now(now)
        old, _ = self.store.get_time_bank()
        self.store.set_time_bank(seconds, observed_at=at)
        self._persist()
        self._record([Event(
            event_type=EventType.TIME_BANK_UPDATED,
            description=f"Time bank set to {seconds} seconds",
            game_time=at,
            effects=[EventEffect(field="time_bank_value", old_value=old, new_value=seconds)],
        )])
        return True

    def reset_time_bank(self) -> bool:
        old, _ = self.store.get_time_bank()
        self.store.set_time_bank(0, observed_at=0)
        self._persist()
        self._record([Event(
            event_type=EventType.TIME_BANK_UPDATED,
            description="Time bank reset to 0",
            game_time=self.now(),
            effects=[EventEffect(field="time_bank_value", old_value=old, new_value=0)],
        )])
        return True
