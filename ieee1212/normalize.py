"""
Repair the discovered block set so that it partitions the whole buffer.

Declared lengths come from the device and are only an upper bound: a block
that runs into the next one is cut at the next block's offset. Whatever is
left uncovered afterwards becomes an orphan block.
"""

from logging import getLogger

from .blocks import BlockKind, ConfigROM

logger = getLogger(__name__)


def clamp_block_lengths(rom: ConfigROM) -> int:
    """Shrink overlapping blocks; returns how many were shrunk."""
    clamped = 0
    for index, block in enumerate(rom.blocks):
        next_offset = rom.next_offset(index)
        if block.end > next_offset:
            logger.debug("clamping %s at rom+0x%04x from %d to %d bytes",
                         block.kind.name, block.offset, block.length, next_offset - block.offset)
            block.length = next_offset - block.offset
            clamped += 1
    return clamped


def fill_orphan_blocks(rom: ConfigROM) -> int:
    """Cover every gap with an orphan block; returns how many were added."""
    added = 0
    if rom.blocks and rom.blocks[0].offset > 0:
        rom.add_block(0, rom.blocks[0].offset, BlockKind.ORPHAN)
        added += 1
    elif not rom.blocks and rom.data:
        rom.add_block(0, len(rom.data), BlockKind.ORPHAN)
        return 1

    index = 0
    while index < len(rom.blocks):
        block = rom.blocks[index]
        next_offset = rom.next_offset(index)
        if block.end < next_offset:
            logger.debug("unreferenced data at rom+0x%04x (%d bytes)", block.end, next_offset - block.end)
            rom.add_block(block.end, next_offset - block.end, BlockKind.ORPHAN)
            added += 1
        index += 1
    return added


def normalize_blocks(rom: ConfigROM) -> ConfigROM:
    clamp_block_lengths(rom)
    fill_orphan_blocks(rom)
    return rom
