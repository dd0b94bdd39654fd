"""Raw frame builders for tests, laid out the way the client delivers them."""
import struct

from keytracker.models.frames import KEY_ITEM_BLOCK_SIZE


def key_item_frame(held=(), block=6):
    data = bytearray(0x88)
    first = block * KEY_ITEM_BLOCK_SIZE
    for item_id in held:
        bit = item_id - first
        data[0x04 + bit // 8] |= 1 << (bit % 8)
    data[0x84] = block
    return bytes(data)


def zone_frame(zone_id):
    data = bytearray(0x14)
    struct.pack_into("<H", data, 0x10, zone_id)
    return bytes(data)


def time_credit_frame(actor_id, message_id, value):
    data = bytearray(0x1C)
    struct.pack_into("<I", data, 0x04, actor_id)
    data[0x0C:0x0F] = value.to_bytes(3, "little")
    struct.pack_into("<H", data, 0x1A, message_id)
    return bytes(data)


def storage_frame(count):
    data = bytearray(0x0C)
    data[0x0B] = count
    return bytes(data)


def logout_frame(remaining):
    data = bytearray(0x08)
    struct.pack_into("<I", data, 0x04, remaining)
    return bytes(data)
