"""
Quadlet level helpers: byte order, bit fields of directory entries.

The decoder always works on a buffer in bus order (big-endian). Host dumps
(e.g. /sys/bus/firewire/devices/*/config_rom on a little-endian machine) are
word-swapped once by normalize_endianness() before anything else reads them.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import List, Tuple
import struct

# Quadlet 1 of the bus information block. "1394" is what every 1394 node
# publishes; 0x1394 is accepted as well for hand-made images.
BUS_NAME_1394 = 0x31333934
BIG_ENDIAN_MARKERS = (BUS_NAME_1394, 0x1394)

# Base of the initial register space; CSR offset entries are relative to it.
REGISTER_SPACE_ADDRESS = 0xFFFF_F000_0000


class KeyType(IntEnum):
    """Directory entry key types (IEEE 1212 §7.6.1)"""
    IMMEDIATE = 0
    CSR_OFFSET = 1
    LEAF = 2
    DIRECTORY = 3


KEY_TYPE_NAMES = {
    KeyType.IMMEDIATE: "Imm",
    KeyType.CSR_OFFSET: "CSR",
    KeyType.LEAF: "Leaf",
    KeyType.DIRECTORY: "Dir",
}


def be32(data: bytes, off: int) -> int:
    return struct.unpack_from(">I", data, off)[0]


def le32(data: bytes, off: int) -> int:
    return struct.unpack_from("<I", data, off)[0]


def read_quadlets(data: bytes, off: int, count: int) -> List[int]:
    return list(struct.unpack_from(f">{count}I", data, off)) if count > 0 else []


def swap_words(data: bytes) -> bytes:
    """Swap every whole 4-byte word; a trailing partial word is dropped."""
    count = len(data) // 4
    if count == 0:
        return b""
    return struct.pack(f">{count}I", *struct.unpack_from(f"<{count}I", data))


def is_big_endian(data: bytes) -> bool:
    """Check quadlet 1 of the bus information block for the bus name marker."""
    return be32(data, 4) in BIG_ENDIAN_MARKERS


def normalize_endianness(data: bytes) -> Tuple[bytes, bool]:
    """
    Return (buffer in bus order, whether it was swapped).

    The caller must have rejected buffers shorter than 8 bytes already.
    """
    usable = len(data) - len(data) % 4
    if is_big_endian(data):
        return bytes(data[:usable]), False
    return swap_words(data), True


def decode_directory_entry(quadlet: int) -> Tuple[KeyType, int, int]:
    """
    Directory entry layout:
      bits[31:30] = key_type
      bits[29:24] = key_id
      bits[23:0]  = value (immediate, CSR quadlet offset, or ROM quadlet offset)
    """
    key_type = KeyType((quadlet >> 30) & 0x3)
    key_id = (quadlet >> 24) & 0x3F
    value = quadlet & 0xFFFFFF
    return key_type, key_id, value


@dataclass
class DirectoryEntry:
    offset_in_rom: int              # byte offset of this entry within the ROM blob
    raw: int                        # 32-bit raw quadlet (bus order)
    key_type: KeyType
    key_id: int
    value: int

    @property
    def csr_address(self) -> int:
        """Absolute register address of a CSR offset entry."""
        return REGISTER_SPACE_ADDRESS + 4 * self.value

    @property
    def target_rom_offset(self) -> int:
        """ROM offset a leaf or directory entry points to."""
        return self.offset_in_rom + 4 * self.value

    @classmethod
    def from_quadlet(cls, offset_in_rom: int, raw: int) -> "DirectoryEntry":
        key_type, key_id, value = decode_directory_entry(raw)
        return cls(offset_in_rom=offset_in_rom, raw=raw, key_type=key_type, key_id=key_id, value=value)
