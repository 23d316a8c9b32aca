"""
Block discovery: find every bus info, directory and leaf block of a ROM.

Discovery starts at the bus information block, steps to the root directory
right behind it and then follows each leaf and directory entry depth first.
Entry values are quadlet offsets relative to the entry itself, so every
reference points forward. Blocks are recorded in offset order as they are
found; a block that is referenced twice keeps the key id and parent of the
first entry that reached it.
"""

from logging import getLogger
from typing import Optional, Set

from .blocks import Block, BlockKind, ConfigROM
from .errors import CyclicReference, OffsetOutOfRange, TruncatedBuffer
from .quadlets import KeyType, be32, decode_directory_entry

logger = getLogger(__name__)


def _header(data: bytes, offset: int) -> int:
    if offset < 0 or offset + 4 > len(data):
        raise TruncatedBuffer(offset, 4, len(data))
    return be32(data, offset)


def bus_info_length(data: bytes, offset: int = 0) -> int:
    """
    Bus info header: [info_len:8][crc_len:8][CRC:16]; info_len quadlets follow
    the header.
    """
    length = 4 + 4 * (_header(data, offset) >> 24)
    if offset + length > len(data):
        raise TruncatedBuffer(offset, length, len(data))
    return length


def generic_block_length(data: bytes, offset: int) -> int:
    """
    Leaf/directory header: [length:16][CRC:16]; length quadlets follow the
    header.
    """
    length = 4 + 4 * (_header(data, offset) >> 16)
    if offset + length > len(data):
        raise TruncatedBuffer(offset, length, len(data))
    return length


class BlockDiscovery:
    """One discovery pass over one buffer. Not reusable."""

    def __init__(self, data: bytes, swapped: bool = False):
        self.rom = ConfigROM(data, swapped)
        # directories whose entries are being walked right now
        self.pending: Set[int] = set()

    @property
    def data(self) -> bytes:
        return self.rom.data

    def run(self) -> ConfigROM:
        bus_info = self.discover_bus_info()
        root_offset = bus_info.end
        self.discover_root_directory(root_offset, generic_block_length(self.data, root_offset))
        return self.rom

    def discover_bus_info(self) -> Block:
        length = bus_info_length(self.data)
        logger.debug("bus info block at rom+0x0000 (%d bytes)", length)
        return self.rom.add_block(0, length, BlockKind.BUS_INFO)

    def discover_root_directory(self, offset: int, length: int) -> Block:
        logger.debug("root directory at rom+0x%04x (%d bytes)", offset, length)
        block = self.rom.add_block(offset, length, BlockKind.ROOT_DIRECTORY)
        self._walk(block)
        return block

    def discover_directory(self, offset: int, length: int, key_id: int,
                           parent: Optional[int]) -> Block:
        existing = self.rom.get(offset)
        if existing is not None:
            return existing
        logger.debug("directory at rom+0x%04x (%d bytes, key 0x%02x)", offset, length, key_id)
        block = self.rom.add_block(offset, length, BlockKind.DIRECTORY, key_id=key_id, parent=parent)
        self._walk(block)
        return block

    def discover_leaf(self, offset: int, length: int, key_id: int,
                      parent: Optional[int]) -> Block:
        existing = self.rom.get(offset)
        if existing is not None:
            return existing
        logger.debug("leaf at rom+0x%04x (%d bytes, key 0x%02x)", offset, length, key_id)
        return self.rom.add_block(offset, length, BlockKind.LEAF, key_id=key_id, parent=parent)

    def _walk(self, directory: Block) -> None:
        self.pending.add(directory.offset)
        try:
            for entry_offset in range(directory.offset + 4, directory.end, 4):
                key_type, key_id, value = decode_directory_entry(be32(self.data, entry_offset))
                if key_type not in (KeyType.LEAF, KeyType.DIRECTORY):
                    continue

                block_offset = entry_offset + 4 * value
                if block_offset >= len(self.data):
                    raise OffsetOutOfRange(entry_offset, block_offset, len(self.data))
                length = generic_block_length(self.data, block_offset)

                if key_type == KeyType.LEAF:
                    self.discover_leaf(block_offset, length, key_id, directory.offset)
                else:
                    if block_offset in self.pending:
                        raise CyclicReference(entry_offset, block_offset)
                    self.discover_directory(block_offset, length, key_id, directory.offset)
        finally:
            self.pending.discard(directory.offset)


def discover_blocks(data: bytes, swapped: bool = False) -> ConfigROM:
    """Run discovery over a bus-order buffer. Raises on the first fatal error."""
    return BlockDiscovery(data, swapped).run()
