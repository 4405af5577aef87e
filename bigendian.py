# Classic Macintosh on-disk structures store integers most significant byte first.

import struct


def read_u16(buffer, offset: int = 0) -> int:
    return struct.unpack_from('>H', buffer, offset)[0]


def read_u32(buffer, offset: int = 0) -> int:
    return struct.unpack_from('>L', buffer, offset)[0]


def write_u16(value: int, buffer: bytearray, offset: int = 0):
    struct.pack_into('>H', buffer, offset, value)


def write_u32(value: int, buffer: bytearray, offset: int = 0):
    struct.pack_into('>L', buffer, offset, value)
