"""Cooldown state schemas - the persisted aggregate for one player identity."""

from __future__ import annotations
from typing import Optional
from pydantic import BaseModel, Field


GATED_ZONE_COOLDOWN = 216000  # 60 hours
STORAGE_CAPACITY = 3


class CooldownState(BaseModel):
    """Everything the tracker knows about one player's key items."""
    # Item id -> unix time the cooldown started (0 = never)
    timestamps: dict[int, int] = Field(default_factory=dict)
    # Item id -> currently held
    owned: dict[int, bool] = Field(default_factory=dict)

    # Regenerating consumable held in storage
    storage_count: int = Field(default=0, ge=0, le=STORAGE_CAPACITY)
    storage_timer: int = Field(default=0, ge=0, description="Start of the current regeneration cycle")

    # Gated zone re-entry cooldown; ready time is stored, not recomputed
    gated_zone_entry_time: int = Field(default=0, ge=0)
    gated_zone_ready_time: int = Field(default=0, ge=0)

    # Time bank (empty hourglass) reading
    time_bank_value: int = Field(default=0, ge=0, description="Seconds of banked time")
    time_bank_observed_at: int = Field(default=0, ge=0)

    model_config = {"validate_assignment": True}

    def has_meaningful_data(self) -> bool:
        """True once any timestamp is set or any item is held."""
        return any(ts > 0 for ts in self.timestamps.values()) or any(
            held is True for held in self.owned.values()
        )

    def summary(self) -> str:
        """Generate a one-line text summary."""
        started = sum(1 for ts in self.timestamps.values() if ts > 0)
        held = sum(1 for v in self.owned.values() if v)
        return (
            f"{started} cooldowns recorded, {held} items held, "
            f"storage {self.storage_count}/{STORAGE_CAPACITY}, "
            f"time bank {self.time_bank_value}s"
        )


class ZoneTransitionRecord(BaseModel):
    """Previous and current zone, as last seen on the wire."""
    previous_zone_id: Optional[int] = None
    current_zone_id: Optional[int] = None
