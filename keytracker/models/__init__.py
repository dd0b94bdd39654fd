"""Pydantic data models for tracked items, cooldown state, frames, events, and statuses."""

from .items import AcquisitionPolicy, TrackedItem, ItemCatalog, default_catalog
from .state import CooldownState, ZoneTransitionRecord, GATED_ZONE_COOLDOWN, STORAGE_CAPACITY
from .frames import (
    FrameType,
    ItemOwnershipSnapshot,
    ZoneChanged,
    TimeCreditObserved,
    StorageCountObserved,
    LogoutCountdown,
    Unrecognized,
    read_bit,
)
from .events import Event, EventEffect, EventType
from .status import ItemStatus, GatedZoneStatus, Availability, format_duration

__all__ = [
    "AcquisitionPolicy",
    "TrackedItem",
    "ItemCatalog",
    "default_catalog",
    "CooldownState",
    "ZoneTransitionRecord",
    "GATED_ZONE_COOLDOWN",
    "STORAGE_CAPACITY",
    "FrameType",
    "ItemOwnershipSnapshot",
    "ZoneChanged",
    "TimeCreditObserved",
    "StorageCountObserved",
    "LogoutCountdown",
    "Unrecognized",
    "read_bit",
    "Event",
    "EventEffect",
    "EventType",
    "ItemStatus",
    "GatedZoneStatus",
    "Availability",
    "format_duration",
]
