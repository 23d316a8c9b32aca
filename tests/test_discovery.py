"""
Tests for block discovery: length rules, entry resolution and deduplication
"""

import pytest

from ieee1212.blocks import BlockKind
from ieee1212.discovery import BlockDiscovery, bus_info_length, discover_blocks, generic_block_length
from ieee1212.errors import ConfigROMError, CyclicReference, OffsetOutOfRange, TruncatedBuffer

from conftest import block, bus_info_1394, bus_info_block, pack_be


def test_sample_blocks(sample_rom_bytes):
    rom = discover_blocks(sample_rom_bytes)
    layout = [(b.offset, b.length, b.kind) for b in rom]
    assert layout == [
        (0x00, 20, BlockKind.BUS_INFO),
        (0x14, 20, BlockKind.ROOT_DIRECTORY),
        (0x28, 20, BlockKind.LEAF),
        (0x3C, 12, BlockKind.DIRECTORY),
    ]


def test_sample_parents_and_key_ids(sample_rom_bytes):
    rom = discover_blocks(sample_rom_bytes)
    leaf = rom.get(0x28)
    unit = rom.get(0x3C)
    assert (leaf.key_id, leaf.parent) == (0x01, 0x14)
    assert (unit.key_id, unit.parent) == (0x11, 0x14)
    assert rom.parent_of(leaf) is rom.root_directory
    assert rom.bus_info.key_id is None and rom.bus_info.parent is None


def test_offsets_strictly_increasing(sample_rom_bytes):
    rom = discover_blocks(sample_rom_bytes)
    offsets = [b.offset for b in rom]
    assert offsets == sorted(set(offsets))
    assert rom.blocks[0].kind == BlockKind.BUS_INFO
    assert [b.kind for b in rom].count(BlockKind.BUS_INFO) == 1
    assert [b.kind for b in rom].count(BlockKind.ROOT_DIRECTORY) == 1


def test_content_is_a_view(sample_rom_bytes):
    rom = discover_blocks(sample_rom_bytes)
    leaf = rom.get(0x28)
    assert isinstance(leaf.content, memoryview)
    assert leaf.content.obj is rom.data
    assert bytes(leaf.content) == sample_rom_bytes[0x28:0x3C]


def test_bus_info_length():
    data = pack_be(bus_info_1394())
    assert bus_info_length(data) == 20
    with pytest.raises(TruncatedBuffer):
        bus_info_length(data[:16])


def test_generic_block_length():
    data = pack_be([0, 0] + block(1, 2, 3))
    assert generic_block_length(data, 8) == 16
    with pytest.raises(TruncatedBuffer) as exc:
        generic_block_length(data[:20], 8)
    assert exc.value.offset == 8
    assert exc.value.length == 16


def test_header_past_end_is_truncated():
    data = pack_be(bus_info_1394())
    with pytest.raises(TruncatedBuffer):
        generic_block_length(data, len(data))


def test_root_directory_missing():
    with pytest.raises(TruncatedBuffer) as exc:
        discover_blocks(pack_be(bus_info_1394()))
    assert exc.value.offset == 20


def test_entry_out_of_range():
    data = pack_be(bus_info_1394() + block(0x810000FF))
    with pytest.raises(OffsetOutOfRange) as exc:
        discover_blocks(data)
    assert exc.value.entry_offset == 0x18
    assert exc.value.block_offset == 0x18 + 4 * 0xFF
    assert isinstance(exc.value, ConfigROMError)


def test_entry_pointing_at_end_of_buffer():
    # 0x18 + 4 == len(data): just past the last quadlet
    data = pack_be(bus_info_1394() + block(0x81000001))
    with pytest.raises(OffsetOutOfRange):
        discover_blocks(data)


def test_referenced_block_overruns_buffer():
    data = pack_be(bus_info_1394() + block(0x81000001) + [0x00040000])
    with pytest.raises(TruncatedBuffer) as exc:
        discover_blocks(data)
    assert exc.value.offset == 0x1C


def test_immediate_and_csr_entries_are_not_followed():
    data = pack_be(bus_info_1394() + block(0x03FFFFFF, 0x54FFFFFF))
    rom = discover_blocks(data)
    assert [b.kind for b in rom] == [BlockKind.BUS_INFO, BlockKind.ROOT_DIRECTORY]


def test_two_entries_same_leaf():
    # entries at 0x18 and 0x1c both resolve to 0x20
    data = pack_be(bus_info_1394() + block(0x81000002, 0x82000001) + block())
    rom = discover_blocks(data)
    leaves = [b for b in rom if b.kind == BlockKind.LEAF]
    assert len(leaves) == 1
    assert leaves[0].offset == 0x20
    assert leaves[0].key_id == 0x01     # first writer wins


def test_two_entries_same_directory():
    data = pack_be(bus_info_1394() + block(0xD1000002, 0xD1000001) + block(0x12ABCDEF))
    rom = discover_blocks(data)
    directories = [b for b in rom if b.kind == BlockKind.DIRECTORY]
    assert len(directories) == 1
    assert directories[0].offset == 0x20


def test_nested_directories_chain_parents():
    data = pack_be(
        bus_info_1394()
        + block(0xD1000001)             # root @0x14 -> unit @0x1c
        + block(0xD4000001)             # unit @0x1c -> logical unit @0x24
        + block(0x81000001)             # logical unit @0x24 -> leaf @0x2c
        + block(0x00000000)
    )
    rom = discover_blocks(data)
    leaf = rom.get(0x2C)
    assert [b.offset for b in rom.ancestors(leaf)] == [0x24, 0x1C, 0x14]
    assert rom.get(0x24).key_id == 0x14


def test_directory_still_being_walked_is_cyclic():
    data = pack_be(bus_info_1394() + block(0xD1000001) + block())
    engine = BlockDiscovery(data)
    engine.discover_bus_info()
    engine.pending.add(0x1C)
    with pytest.raises(CyclicReference) as exc:
        engine.discover_root_directory(0x14, generic_block_length(data, 0x14))
    assert exc.value.block_offset == 0x1C
    assert exc.value.entry_offset == 0x18


def test_pending_is_cleared_after_walk(sample_rom_bytes):
    engine = BlockDiscovery(sample_rom_bytes)
    engine.run()
    assert engine.pending == set()


def test_bus_info_without_payload():
    data = pack_be(bus_info_block() + block())
    rom = discover_blocks(data)
    assert [(b.offset, b.length) for b in rom] == [(0, 4), (4, 4)]
