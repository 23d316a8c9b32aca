"""
Tests for byte order detection and directory entry decoding
"""

import struct

import pytest

from ieee1212.quadlets import (
    REGISTER_SPACE_ADDRESS,
    DirectoryEntry,
    KeyType,
    be32,
    decode_directory_entry,
    is_big_endian,
    le32,
    normalize_endianness,
    swap_words,
)


@pytest.mark.parametrize("key_id", [0x00, 0x01, 0x11, 0x3F])
@pytest.mark.parametrize("value", [0x000000, 0x000001, 0x123456, 0xFFFFFF])
def test_decode_directory_reference(key_id, value):
    key_type, decoded_id, decoded_value = decode_directory_entry(0xC0000000 | (key_id << 24) | value)
    assert key_type == KeyType.DIRECTORY
    assert decoded_id == key_id
    assert decoded_value == value


@pytest.mark.parametrize("prefix, key_type", [
    (0x00000000, KeyType.IMMEDIATE),
    (0x40000000, KeyType.CSR_OFFSET),
    (0x80000000, KeyType.LEAF),
    (0xC0000000, KeyType.DIRECTORY),
])
def test_decode_key_type(prefix, key_type):
    assert decode_directory_entry(prefix | 0x17000001)[0] == key_type


def test_directory_entry_addresses():
    csr = DirectoryEntry.from_quadlet(0x20, 0x54004000)
    assert csr.key_type == KeyType.CSR_OFFSET
    assert csr.key_id == 0x14
    assert csr.csr_address == REGISTER_SPACE_ADDRESS + 0x10000

    leaf = DirectoryEntry.from_quadlet(0x1C, 0x81000003)
    assert leaf.key_type == KeyType.LEAF
    assert leaf.target_rom_offset == 0x1C + 12


def test_be32_le32():
    data = bytes([0x31, 0x33, 0x39, 0x34])
    assert be32(data, 0) == 0x31333934
    assert le32(data, 0) == 0x34393331


def test_swap_words_drops_partial_quadlet():
    assert swap_words(b"\x01\x02\x03\x04\x05\x06") == b"\x04\x03\x02\x01"
    assert swap_words(b"\x01\x02") == b""


def test_wire_format_is_left_alone(sample_rom_bytes):
    assert is_big_endian(sample_rom_bytes)
    data, swapped = normalize_endianness(sample_rom_bytes)
    assert not swapped
    assert data == sample_rom_bytes


def test_host_dump_is_swapped(sample_rom_le, sample_rom_bytes):
    assert not is_big_endian(sample_rom_le)
    data, swapped = normalize_endianness(sample_rom_le)
    assert swapped
    assert data == sample_rom_bytes


def test_literal_marker_counts_as_big_endian():
    data = struct.pack(">2I", 0x01000000, 0x1394)
    assert is_big_endian(data)
    assert normalize_endianness(data) == (data, False)


def test_zero_filled_little_endian_header():
    data = struct.pack("<6I", 0x04000000, 0, 0, 0, 0, 0)
    assert not is_big_endian(data)
    normalized, swapped = normalize_endianness(data)
    assert swapped
    assert be32(normalized, 0) == 0x04000000
