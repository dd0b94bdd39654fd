"""Read-only status snapshots handed to the display layer."""

from __future__ import annotations
from enum import Enum
from typing import Optional
from pydantic import BaseModel


def format_duration(seconds: Optional[int]) -> str:
    """Format seconds as 00h:00m:00s."""
    if seconds is None:
        return "--"
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}h:{minutes:02d}m:{secs:02d}s"


class Availability(str, Enum):
    UNKNOWN = "unknown"
    AVAILABLE = "available"
    COOLDOWN = "cooldown"
    OWNED = "owned"


class ItemStatus(BaseModel):
    """Display row for one tracked item."""
    id: int
    name: str
    timestamp: int = 0
    remaining: Optional[int] = None  # None = never observed
    owned: bool = False
    available: bool = False
    storage_count: Optional[int] = None
    regeneration_remaining: Optional[int] = None

    model_config = {"frozen": True}

    @property
    def availability(self) -> Availability:
        if self.owned:
            return Availability.OWNED
        if self.available:
            return Availability.AVAILABLE
        if self.storage_count is None and self.timestamp <= 0:
            return Availability.UNKNOWN
        return Availability.COOLDOWN

    @property
    def ready_for_pickup(self) -> bool:
        return self.available and not self.owned

    def display_remaining(self) -> str:
        """Text for the time column of the status table."""
        if self.storage_count is not None:
            if self.storage_count >= 3:
                timer = "Storage full"
            elif self.regeneration_remaining is None:
                timer = "Waiting for data"
            else:
                timer = format_duration(self.regeneration_remaining)
            return f"{timer} ({self.storage_count}/3)"
        if self.remaining is None:
            return "Unknown"
        if self.remaining <= 0:
            return "Ready"
        return format_duration(self.remaining)


class GatedZoneStatus(BaseModel):
    """Display data for the gated zone cooldown and time bank."""
    entry_time: int = 0
    remaining: Optional[int] = None
    available: bool = True
    time_bank_value: int = 0
    time_bank_observed_at: int = 0

    model_config = {"frozen": True}

    @property
    def time_bank_covers_cooldown(self) -> bool:
        """Whether the banked time is enough to skip the running cooldown."""
        return bool(self.remaining) and self.time_bank_value >= (self.remaining or 0)
