"""Tracked key item definitions - the static catalog the engine watches."""

from __future__ import annotations
from enum import Enum
from typing import Iterator, Optional
from pydantic import BaseModel, Field
from thefuzz import fuzz, process


class AcquisitionPolicy(str, Enum):
    """How acquisition and loss of an item map to its cooldown."""
    TIMESTAMP_ON_ACQUIRE = "timestamp-on-acquire"
    TIMESTAMP_ON_LOSS = "timestamp-on-loss"
    NO_TIMESTAMP_UNTIL_USED = "no-timestamp-until-used"
    STORAGE_COUNTED = "storage-counted"


class TrackedItem(BaseModel):
    """A key item whose cooldown is tracked."""
    id: int
    name: str
    cooldown: int = Field(ge=0, description="Cooldown duration in seconds")
    policy: AcquisitionPolicy = AcquisitionPolicy.TIMESTAMP_ON_ACQUIRE
    description: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def is_storage_counted(self) -> bool:
        return self.policy == AcquisitionPolicy.STORAGE_COUNTED


MOGLOPHONE = 3212
MYSTICAL_CANTEEN = 3137
SHINY_RAKAZNAR_PLATE = 3300

TWENTY_HOURS = 72000


class ItemCatalog:
    """Immutable lookup of tracked items by id and name."""

    def __init__(self, items: list[TrackedItem]):
        self._items: dict[int, TrackedItem] = {item.id: item for item in items}

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def __iter__(self) -> Iterator[TrackedItem]:
        return iter(sorted(self._items.values(), key=lambda i: i.id))

    def __len__(self) -> int:
        return len(self._items)

    def get(self, item_id: int) -> Optional[TrackedItem]:
        """Get an item by id."""
        return self._items.get(item_id)

    def ids(self) -> set[int]:
        """All tracked ids."""
        return set(self._items)

    def ids_in_block(self, first_id: int, size: int = 512) -> list[int]:
        """Tracked ids that fall inside [first_id, first_id + size)."""
        return sorted(i for i in self._items if first_id <= i < first_id + size)

    def find(self, query: str, threshold: int = 70) -> Optional[TrackedItem]:
        """Find an item by (partial, case-insensitive) name."""
        query = query.strip()
        if not query:
            return None

        if query.isdigit():
            return self.get(int(query))

        query_lower = query.lower()
        for item in self:
            if query_lower in item.name.lower():
                return item

        names = {item.id: item.name for item in self}
        match = process.extractOne(query, names, scorer=fuzz.partial_ratio)
        if match and match[1] >= threshold:
            return self.get(match[2])
        return None


DEFAULT_ITEMS = [
    TrackedItem(
        id=MOGLOPHONE,
        name="Moglophone",
        cooldown=TWENTY_HOURS,
        policy=AcquisitionPolicy.TIMESTAMP_ON_ACQUIRE,
        description="Cooldown starts when obtained",
    ),
    TrackedItem(
        id=MYSTICAL_CANTEEN,
        name="Mystical Canteen",
        cooldown=TWENTY_HOURS,
        policy=AcquisitionPolicy.STORAGE_COUNTED,
        description="Regenerates in storage, one every 20 hours up to 3",
    ),
    TrackedItem(
        id=SHINY_RAKAZNAR_PLATE,
        name="Shiny Rakaznar Plate",
        cooldown=TWENTY_HOURS,
        policy=AcquisitionPolicy.NO_TIMESTAMP_UNTIL_USED,
        description="Cooldown starts when used for teleport",
    ),
]


def default_catalog() -> ItemCatalog:
    """Build the catalog of items tracked out of the box."""
    return ItemCatalog(DEFAULT_ITEMS)
