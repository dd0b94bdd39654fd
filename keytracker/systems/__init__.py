"""Core tracker systems: decoding, item rules, zone tracking, persistence and backups."""

from .decoder import FrameDecoder
from .state_store import CooldownStateStore
from .zone_tracker import ZoneTransitionDetector
from .event_bus import EventBus
from .event_log import EventLog
from .persistence import PersistenceGuard, StateRepository
from .backups import BackupRotator

__all__ = [
    "FrameDecoder",
    "CooldownStateStore",
    "ZoneTransitionDetector",
    "EventBus",
    "EventLog",
    "PersistenceGuard",
    "StateRepository",
    "BackupRotator",
]
