"""
Pytest configuration and ROM image builders shared by the test modules.

The sample ROM used throughout (offsets in bytes, bus order):

    0x00  bus info block, 5 quadlets, crc_length 4
    0x14  root directory: vendor, descriptor leaf -> 0x28, model, unit dir -> 0x3c
    0x28  textual descriptor leaf "TestROM"
    0x3c  unit directory: specifier id 0x00609e, version 0x010483 (SBP-2)
    0x48  two quadlets nobody refers to
"""

import struct
from typing import List

import pytest

from ieee1212.crc import crc16_over_quadlets

BUS_OPTIONS = 0xE064A222
GUID_HI = 0x000A2701
GUID_LO = 0x23456789


def bus_info_block(*quadlets: int, crc_length: int = None) -> List[int]:
    if crc_length is None:
        crc_length = len(quadlets)
    crc = crc16_over_quadlets(quadlets[:crc_length])
    return [(len(quadlets) << 24) | (crc_length << 16) | crc, *quadlets]


def block(*payload: int) -> List[int]:
    """Leaf or directory with a correct [length:16][CRC:16] header."""
    return [(len(payload) << 16) | crc16_over_quadlets(payload), *payload]


def pack_be(quadlets: List[int]) -> bytes:
    return struct.pack(f">{len(quadlets)}I", *quadlets)


def pack_le(quadlets: List[int]) -> bytes:
    return struct.pack(f"<{len(quadlets)}I", *quadlets)


def bus_info_1394() -> List[int]:
    return bus_info_block(0x31333934, BUS_OPTIONS, GUID_HI, GUID_LO)


def sample_quadlets() -> List[int]:
    return (
        bus_info_1394()
        + block(0x03000A27, 0x81000003, 0x17000008, 0xD1000006)
        + block(0x00000000, 0x00000000, 0x54657374, 0x524F4D00)
        + block(0x1200609E, 0x13010483)
        + [0x00000000, 0x00000000]
    )


@pytest.fixture
def sample_rom_bytes():
    """Sample ROM in wire format (big-endian)"""
    return pack_be(sample_quadlets())


@pytest.fixture
def sample_rom_le():
    """Sample ROM as a little-endian host dump"""
    return pack_le(sample_quadlets())
