"""Persistence - per-identity state files and the guard that protects them.

Loading never fails: a missing file gives the default state, an unparsable
one gives the default state (logged as an error), and a partial one is merged
field by field against the defaults.
"""

from __future__ import annotations
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from keytracker.models.state import CooldownState, GATED_ZONE_COOLDOWN, STORAGE_CAPACITY
from keytracker.systems.state_store import to_unix

logger = logging.getLogger(__name__)

FILE_VERSION = 1
STATE_FILE_PREFIX = "keytracker_state"

# Field names written by earlier releases
LEGACY_FIELDS = {
    "storage_canteens": "storage_count",
    "last_canteen_time": "storage_timer",
    "dynamis_d_entry_time": "gated_zone_entry_time",
    "dynamis_projected_ready_time": "gated_zone_ready_time",
    "hourglass_time": "time_bank_value",
    "hourglass_packet_timestamp": "time_bank_observed_at",
}

NUMERIC_FIELDS = (
    "storage_count",
    "storage_timer",
    "gated_zone_entry_time",
    "gated_zone_ready_time",
    "time_bank_value",
    "time_bank_observed_at",
)


class StateFileError(ValueError):
    """A state file exists but its content cannot be used."""


class PersistenceGuard:
    """Decides whether writing a state over the durable copy is safe.

    This is a heuristic, not a guarantee: a state that legitimately holds
    nothing yet looks the same as one that was wiped by a bad read.
    """

    def should_save(self, state: Any, has_completed_initial_load: bool) -> bool:
        timestamps = getattr(state, "timestamps", None)
        owned = getattr(state, "owned", None)
        if not isinstance(timestamps, dict) or not isinstance(owned, dict):
            logger.warning("Refusing to save state with missing timestamps or owned tables")
            return False

        if not state.has_meaningful_data() and has_completed_initial_load:
            logger.debug("State appears to be empty - not saving to prevent data loss")
            return False
        return True


def state_filename(identity: Optional[int]) -> str:
    """File name for an identity, falling back to a shared name."""
    if identity is None or identity <= 0:
        return f"{STATE_FILE_PREFIX}.json"
    return f"{STATE_FILE_PREFIX}_{identity}.json"


def _coerce_owned(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return value is True or value == 1


def _coerce_map(raw: Any, coerce_value) -> dict[int, Any]:
    if not isinstance(raw, dict):
        return {}
    result = {}
    for key, value in raw.items():
        try:
            item_id = int(key)
        except (TypeError, ValueError):
            logger.debug("Skipping non-numeric item id %r", key)
            continue
        result[item_id] = coerce_value(value)
    return result


def coerce_state(raw: Any) -> CooldownState:
    """Build a CooldownState from a possibly partial or stale mapping."""
    if not isinstance(raw, dict):
        raise StateFileError(f"expected a table, got {type(raw).__name__}")

    raw = dict(raw)
    for old, new in LEGACY_FIELDS.items():
        if old in raw and new not in raw:
            raw[new] = raw[old]

    fields = {name: to_unix(raw.get(name, 0)) for name in NUMERIC_FIELDS}
    fields["storage_count"] = min(STORAGE_CAPACITY, fields["storage_count"])

    entry = fields["gated_zone_entry_time"]
    if entry > 0 and fields["gated_zone_ready_time"] <= 0:
        logger.info("Migrating gated zone entry time to include ready time")
        fields["gated_zone_ready_time"] = entry + GATED_ZONE_COOLDOWN
    elif entry > 0 and fields["gated_zone_ready_time"] < entry:
        fields["gated_zone_ready_time"] = entry

    return CooldownState(
        timestamps=_coerce_map(raw.get("timestamps"), to_unix),
        owned=_coerce_map(raw.get("owned"), _coerce_owned),
        **fields,
    )


def dumps_state(state: CooldownState, identity: Optional[int] = None) -> str:
    """Serialize a state file."""
    save_data = {
        "version": FILE_VERSION,
        "identity": identity,
        "state": state.model_dump(mode="json"),
    }
    return json.dumps(save_data, indent=2)


def loads_state(text: str) -> CooldownState:
    """Parse a state file. Raises StateFileError for unusable content."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise StateFileError(f"invalid JSON: {e}") from e
    except (ValueError, RecursionError) as e:
        # Oversized integer literals and runaway nesting
        raise StateFileError(f"unreadable content: {e.__class__.__name__}") from e

    if isinstance(data, dict) and isinstance(data.get("state"), dict):
        data = data["state"]
    return coerce_state(data)


class StateRepository:
    """Reads and writes per-identity state files under one directory."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

    def path_for(self, identity: Optional[int]) -> Path:
        return self.data_dir / state_filename(identity)

    def load(self, identity: Optional[int]) -> CooldownState:
        """Load an identity's state, falling back to the default."""
        path = self.path_for(identity)
        if not path.exists():
            logger.debug("No state file at %s - using default state", path)
            return CooldownState()

        try:
            text = path.read_text(encoding="utf-8")
            state = loads_state(text)
        except (OSError, UnicodeDecodeError, StateFileError) as e:
            logger.error("Failed to read state file %s: %s - using default state", path, e)
            return CooldownState()

        logger.debug("Loaded state from %s: %s", path, state.summary())
        return state

    def save(self, state: CooldownState, identity: Optional[int]) -> bool:
        """Write an identity's state file. Returns False on I/O failure."""
        path = self.path_for(identity)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(dumps_state(state, identity), encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error("Failed to save state file %s: %s", path, e)
            return False

        logger.debug("Saved state file %s", path)
        return True
