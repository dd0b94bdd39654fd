"""Frame decoder - turns raw incoming frames into typed frame objects.

Decoding is pure and total: a buffer that is too short for its fixed layout,
or a frame id outside the small set the tracker cares about, comes back as
``Unrecognized`` instead of raising.
"""

from __future__ import annotations
import logging
import struct

from keytracker.models.frames import (
    Frame,
    FrameType,
    ItemOwnershipSnapshot,
    KEY_ITEM_BLOCK_SIZE,
    LogoutCountdown,
    StorageCountObserved,
    TimeCreditObserved,
    Unrecognized,
    ZoneChanged,
)

logger = logging.getLogger(__name__)

# Key item list: 512 ownership bits, then the block index
KEY_ITEM_FLAGS_OFFSET = 0x04
KEY_ITEM_FLAGS_SIZE = KEY_ITEM_BLOCK_SIZE // 8
KEY_ITEM_BLOCK_OFFSET = 0x84

ZONE_ID_OFFSET = 0x10

TIME_CREDIT_ACTOR_OFFSET = 0x04
TIME_CREDIT_VALUE_OFFSET = 0x0C
TIME_CREDIT_MESSAGE_OFFSET = 0x1A

STORAGE_COUNT_OFFSET = 0x0B

LOGOUT_COUNTER_OFFSET = 0x04


def _decode_key_items(data: bytes) -> Frame:
    if len(data) <= KEY_ITEM_BLOCK_OFFSET:
        return Unrecognized(FrameType.KEY_ITEM_LIST, "key item list too short")
    flags = bytes(data[KEY_ITEM_FLAGS_OFFSET:KEY_ITEM_FLAGS_OFFSET + KEY_ITEM_FLAGS_SIZE])
    return ItemOwnershipSnapshot(block=data[KEY_ITEM_BLOCK_OFFSET], flags=flags)


def _decode_zone(data: bytes) -> Frame:
    if len(data) < ZONE_ID_OFFSET + 2:
        return Unrecognized(FrameType.ZONE_CHANGE, "zone frame too short")
    (zone_id,) = struct.unpack_from("<H", data, ZONE_ID_OFFSET)
    return ZoneChanged(zone_id=zone_id)


def _decode_time_credit(data: bytes) -> Frame:
    if len(data) < TIME_CREDIT_MESSAGE_OFFSET + 2:
        return Unrecognized(FrameType.TIME_CREDIT, "message frame too short")
    (actor_id,) = struct.unpack_from("<I", data, TIME_CREDIT_ACTOR_OFFSET)
    (message_id,) = struct.unpack_from("<H", data, TIME_CREDIT_MESSAGE_OFFSET)
    # 24-bit little-endian value
    raw = data[TIME_CREDIT_VALUE_OFFSET:TIME_CREDIT_VALUE_OFFSET + 3]
    value = int.from_bytes(raw, "little")
    return TimeCreditObserved(actor_id=actor_id, message_id=message_id, value=value)


def _decode_storage(data: bytes) -> Frame:
    if len(data) <= STORAGE_COUNT_OFFSET:
        return Unrecognized(FrameType.STORAGE_RESPONSE, "storage frame too short")
    return StorageCountObserved(count=data[STORAGE_COUNT_OFFSET])


def _decode_logout(data: bytes) -> Frame:
    if len(data) < LOGOUT_COUNTER_OFFSET + 4:
        return Unrecognized(FrameType.LOGOUT_COUNTDOWN, "logout frame too short")
    (remaining,) = struct.unpack_from("<I", data, LOGOUT_COUNTER_OFFSET)
    return LogoutCountdown(remaining=remaining)


_DECODERS = {
    FrameType.KEY_ITEM_LIST: _decode_key_items,
    FrameType.ZONE_CHANGE: _decode_zone,
    FrameType.TIME_CREDIT: _decode_time_credit,
    FrameType.STORAGE_RESPONSE: _decode_storage,
    FrameType.LOGOUT_COUNTDOWN: _decode_logout,
}


class FrameDecoder:
    """Decodes the closed set of frame types the tracker listens to."""

    def decode(self, frame_id: int, data: bytes) -> Frame:
        """Decode one frame. Never raises."""
        try:
            frame_type = FrameType(frame_id)
        except ValueError:
            return Unrecognized(frame_id)

        if not isinstance(data, (bytes, bytearray, memoryview)):
            logger.debug("Frame 0x%03X has non-bytes payload %r", frame_id, type(data))
            return Unrecognized(frame_id, "payload is not bytes")

        frame = _DECODERS[frame_type](bytes(data))
        if isinstance(frame, Unrecognized):
            logger.debug("Dropped frame 0x%03X: %s (%d bytes)", frame_id, frame.reason, len(data))
        return frame

    @staticmethod
    def handles(frame_id: int) -> bool:
        """Whether frame_id is one of the decoded frame types."""
        return frame_id in FrameType._value2member_map_
