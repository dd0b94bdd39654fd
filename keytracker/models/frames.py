"""Typed frames produced by the decoder."""

from __future__ import annotations
from dataclasses import dataclass
from enum import IntEnum
from typing import Union


class FrameType(IntEnum):
    """Incoming frame ids, as assigned by the host protocol."""
    ZONE_CHANGE = 0x00A
    TIME_CREDIT = 0x02A
    LOGOUT_COUNTDOWN = 0x053
    KEY_ITEM_LIST = 0x055
    STORAGE_RESPONSE = 0x118


KEY_ITEM_BLOCK_SIZE = 512


def read_bit(data: bytes, byte_offset: int, bit_index: int) -> bool:
    """Read one flag from a little-endian bitfield starting at byte_offset.

    Bit 0 is the least significant bit of data[byte_offset]. Bits past the end
    of the buffer read as unset.
    """
    if byte_offset < 0 or bit_index < 0:
        return False
    position = byte_offset + bit_index // 8
    if position >= len(data):
        return False
    return (data[position] >> (bit_index % 8)) & 1 == 1


@dataclass(frozen=True)
class ItemOwnershipSnapshot:
    """Ownership flags for one 512-id block of key items."""
    block: int
    flags: bytes

    @property
    def first_id(self) -> int:
        return self.block * KEY_ITEM_BLOCK_SIZE

    def covers(self, item_id: int) -> bool:
        """Whether this snapshot carries a flag for item_id."""
        return self.first_id <= item_id < self.first_id + KEY_ITEM_BLOCK_SIZE

    def is_held(self, item_id: int) -> bool:
        if not self.covers(item_id):
            return False
        return read_bit(self.flags, 0, item_id - self.first_id)


@dataclass(frozen=True)
class ZoneChanged:
    zone_id: int


@dataclass(frozen=True)
class TimeCreditObserved:
    """An NPC message that may carry the player's banked time."""
    actor_id: int
    message_id: int
    value: int


@dataclass(frozen=True)
class StorageCountObserved:
    count: int


@dataclass(frozen=True)
class LogoutCountdown:
    """Seconds left before a forced logout."""
    remaining: int


@dataclass(frozen=True)
class Unrecognized:
    frame_id: int
    reason: str = "unknown frame type"


Frame = Union[
    ItemOwnershipSnapshot,
    ZoneChanged,
    TimeCreditObserved,
    StorageCountObserved,
    LogoutCountdown,
    Unrecognized,
]
