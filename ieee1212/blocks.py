"""
Block tree of a decoded configuration ROM.

All blocks live in one ConfigROM, sorted by offset. A block refers to the
directory that listed it by that directory's offset, never by holding it, so
the tree is an index over a single arena and can be dropped in one go.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Iterator, List, Optional

from .crc import ChecksumMismatch, check_block_crc, check_bus_info_crc
from .errors import AllocationFailure
from .quadlets import DirectoryEntry, read_quadlets


class BlockKind(IntEnum):
    BUS_INFO = 0
    ROOT_DIRECTORY = 1
    LEAF = 2
    DIRECTORY = 3
    ORPHAN = 4


DIRECTORY_KINDS = (BlockKind.ROOT_DIRECTORY, BlockKind.DIRECTORY)
REFERENCED_KINDS = (BlockKind.LEAF, BlockKind.DIRECTORY)


@dataclass
class Block:
    offset: int                     # byte offset from the start of the ROM, quadlet aligned
    length: int                     # byte length including the header quadlet
    kind: BlockKind
    buffer: memoryview = field(repr=False, compare=False)
    key_id: Optional[int] = None    # LEAF/DIRECTORY: key id of the referencing entry
    parent: Optional[int] = None    # LEAF/DIRECTORY: offset of the referencing directory

    @property
    def end(self) -> int:
        return self.offset + self.length

    @property
    def content(self) -> memoryview:
        return self.buffer[self.offset:self.end]

    @property
    def quadlets(self) -> List[int]:
        return read_quadlets(self.buffer, self.offset, self.length // 4)

    @property
    def header(self) -> int:
        return read_quadlets(self.buffer, self.offset, 1)[0]

    @property
    def declared_length(self) -> int:
        """Byte length the header claims, before any clamping."""
        if self.kind == BlockKind.BUS_INFO:
            return 4 + 4 * (self.header >> 24)
        if self.kind == BlockKind.ORPHAN:
            return self.length
        return 4 + 4 * (self.header >> 16)


class ConfigROM:
    """
    Offset-ordered sequence of blocks over one captured ROM image.

    `data` is always in bus order (big-endian); `swapped` records whether the
    capture had to be word-swapped to get there.
    """

    def __init__(self, data: bytes, swapped: bool = False):
        self.data = bytes(data)
        self.swapped = swapped
        self._view = memoryview(self.data)
        self.blocks: List[Block] = []
        self._by_offset: Dict[int, Block] = {}

    def __len__(self) -> int:
        return len(self.blocks)

    def __iter__(self) -> Iterator[Block]:
        return iter(self.blocks)

    def __contains__(self, offset: int) -> bool:
        return offset in self._by_offset

    def get(self, offset: int) -> Optional[Block]:
        return self._by_offset.get(offset)

    def add_block(self, offset: int, length: int, kind: BlockKind,
                  key_id: Optional[int] = None, parent: Optional[int] = None) -> Block:
        try:
            block = Block(offset=offset, length=length, kind=kind, buffer=self._view,
                          key_id=key_id, parent=parent)
            self.insert(block)
        except MemoryError as e:
            raise AllocationFailure(offset) from e
        return block

    def insert(self, block: Block) -> None:
        """Insert before the first block with a greater offset, else append."""
        if block.offset in self._by_offset:
            raise ValueError(f"a block is already recorded at rom+0x{block.offset:04x}")
        index = len(self.blocks)
        for i, existing in enumerate(self.blocks):
            if existing.offset > block.offset:
                index = i
                break
        self.blocks.insert(index, block)
        self._by_offset[block.offset] = block

    def next_offset(self, index: int) -> int:
        """Start of the block after blocks[index], or the end of the buffer."""
        if index + 1 < len(self.blocks):
            return self.blocks[index + 1].offset
        return len(self.data)

    @property
    def bus_info(self) -> Optional[Block]:
        return self._first_of(BlockKind.BUS_INFO)

    @property
    def root_directory(self) -> Optional[Block]:
        return self._first_of(BlockKind.ROOT_DIRECTORY)

    def _first_of(self, kind: BlockKind) -> Optional[Block]:
        for block in self.blocks:
            if block.kind == kind:
                return block
        return None

    def parent_of(self, block: Block) -> Optional[Block]:
        if block.parent is None:
            return None
        return self._by_offset.get(block.parent)

    def ancestors(self, block: Block) -> Iterator[Block]:
        """Walk the parent chain up to (and including) the root directory."""
        parent = self.parent_of(block)
        while parent is not None:
            yield parent
            parent = self.parent_of(parent)

    def checksum_findings(self) -> List[ChecksumMismatch]:
        findings: List[ChecksumMismatch] = []
        for block in self.blocks:
            if block.kind == BlockKind.BUS_INFO:
                check = check_bus_info_crc(self.data)
            elif block.kind in DIRECTORY_KINDS or block.kind == BlockKind.LEAF:
                check = check_block_crc(block)
            else:
                continue
            if check.mismatch is not None:
                findings.append(check.mismatch)
        return findings

    def to_dict(self) -> Dict[str, Any]:
        blocks = []
        for block in self.blocks:
            entry: Dict[str, Any] = {
                "offset": block.offset,
                "length": block.length,
                "kind": block.kind.name.lower(),
            }
            if block.kind in REFERENCED_KINDS:
                entry["key_id"] = block.key_id
                entry["parent"] = block.parent
            if block.kind != BlockKind.ORPHAN and block.declared_length != block.length:
                entry["declared_length"] = block.declared_length
            blocks.append(entry)
        return {
            "length": len(self.data),
            "swapped": self.swapped,
            "blocks": blocks,
            "checksum_mismatches": [
                {"offset": f.offset, "declared": f.declared, "computed": f.computed}
                for f in self.checksum_findings()
            ],
        }


def iter_directory_entries(directory: Block) -> Iterator[DirectoryEntry]:
    """Entries of a (root) directory within its current, possibly clamped, length."""
    for i, raw in enumerate(directory.quadlets[1:], start=1):
        yield DirectoryEntry.from_quadlet(directory.offset + 4 * i, raw)
