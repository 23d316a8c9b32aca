"""
Tests for the full decode pipeline
"""

import pytest

from ieee1212.blocks import BlockKind
from ieee1212.errors import ConfigROMError, MalformedInput, TruncatedBuffer
from ieee1212.parser import CONFIG_ROM_SIZE, parse_config_rom

from conftest import block, bus_info_1394, pack_be, pack_le


@pytest.mark.parametrize("length", [0, 1, 4, 7])
def test_too_short(length):
    with pytest.raises(MalformedInput) as exc:
        parse_config_rom(bytes(length))
    assert exc.value.length == length
    assert isinstance(exc.value, ValueError)


def test_sample(sample_rom_bytes):
    rom = parse_config_rom(sample_rom_bytes)
    assert not rom.swapped
    assert [(b.offset, b.kind) for b in rom] == [
        (0x00, BlockKind.BUS_INFO),
        (0x14, BlockKind.ROOT_DIRECTORY),
        (0x28, BlockKind.LEAF),
        (0x3C, BlockKind.DIRECTORY),
        (0x48, BlockKind.ORPHAN),
    ]
    assert rom.checksum_findings() == []


def test_host_dump_matches_wire_format(sample_rom_bytes, sample_rom_le):
    wire = parse_config_rom(sample_rom_bytes)
    host = parse_config_rom(sample_rom_le)
    assert host.swapped
    assert host.data == wire.data
    assert [(b.offset, b.length, b.kind, b.key_id, b.parent) for b in host] == \
        [(b.offset, b.length, b.kind, b.key_id, b.parent) for b in wire]


def test_zero_filled_little_endian_rom():
    rom = parse_config_rom(pack_le([0x04000000, 0, 0, 0, 0, 0]))
    assert rom.swapped
    assert [(b.offset, b.length, b.kind) for b in rom] == [
        (0, 20, BlockKind.BUS_INFO),
        (20, 4, BlockKind.ROOT_DIRECTORY),
    ]


def test_partial_trailing_quadlet_is_ignored(sample_rom_bytes):
    rom = parse_config_rom(sample_rom_bytes + b"\xff\xff")
    assert len(rom.data) == len(sample_rom_bytes)
    assert sum(b.length for b in rom) == len(sample_rom_bytes)


def test_capped_at_config_rom_size(sample_rom_bytes):
    data = sample_rom_bytes + bytes(CONFIG_ROM_SIZE)
    rom = parse_config_rom(data)
    assert len(rom.data) == CONFIG_ROM_SIZE
    assert rom.blocks[-1].end == CONFIG_ROM_SIZE


def test_fatal_errors_share_a_base():
    with pytest.raises(ConfigROMError):
        parse_config_rom(pack_be(bus_info_1394()))
    with pytest.raises(TruncatedBuffer):
        parse_config_rom(pack_be(bus_info_1394() + block(0x81000001) + [0x00020000]))


def test_to_dict(sample_rom_bytes):
    d = parse_config_rom(sample_rom_bytes).to_dict()
    assert d["length"] == 80
    assert d["swapped"] is False
    assert [b["kind"] for b in d["blocks"]] == ["bus_info", "root_directory", "leaf", "directory", "orphan"]
    assert d["blocks"][2]["key_id"] == 0x01
    assert d["blocks"][2]["parent"] == 0x14
    assert "declared_length" not in d["blocks"][2]
    assert d["checksum_mismatches"] == []
