"""
IEEE 1212 configuration ROM decoder.

    rom = parse_config_rom(open("config_rom", "rb").read())
    for block in rom:
        print(block.kind.name, hex(block.offset), block.length)
    print(dump_config_rom(rom))
"""

from .blocks import Block, BlockKind, ConfigROM, iter_directory_entries
from .crc import ChecksumMismatch, CrcCheck, check_block_crc, check_bus_info_crc, crc16_over_quadlets
from .discovery import BlockDiscovery, bus_info_length, discover_blocks, generic_block_length
from .errors import (
    AllocationFailure,
    ConfigROMError,
    CyclicReference,
    MalformedInput,
    OffsetOutOfRange,
    TruncatedBuffer,
)
from .normalize import clamp_block_lengths, fill_orphan_blocks, normalize_blocks
from .parser import CONFIG_ROM_SIZE, parse_config_rom
from .printer import dump_config_rom, format_blocks
from .quadlets import DirectoryEntry, KeyType, decode_directory_entry, is_big_endian, normalize_endianness

__version__ = "0.1.0"
