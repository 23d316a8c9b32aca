"""
ITU-T CRC-16 as used by IEEE 1212 for the bus information block and for every
leaf and directory. The algorithm consumes each quadlet nibble by nibble, most
significant nibble first (IEEE 1212-2001 §7.3).
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from .quadlets import be32, read_quadlets


def crc16_quadlet_step(crc: int, data_quadlet: int) -> int:
    crc &= 0xFFFF
    data = data_quadlet & 0xFFFFFFFF
    for shift in range(28, -1, -4):
        s = ((crc >> 12) ^ (data >> shift)) & 0xF
        crc = ((crc << 4) ^ (s << 12) ^ (s << 5) ^ s) & 0xFFFF
    return crc


def crc16_over_quadlets(quadlets: Iterable[int]) -> int:
    crc = 0
    for q in quadlets:
        crc = crc16_quadlet_step(crc, q)
    return crc


@dataclass(frozen=True)
class ChecksumMismatch:
    """Advisory finding: the CRC stored in a header does not match the data."""
    offset: int
    declared: int
    computed: int

    def __str__(self) -> str:
        return f"CRC mismatch at rom+0x{self.offset:04x}: header 0x{self.declared:04x}, computed 0x{self.computed:04x}"


@dataclass(frozen=True)
class CrcCheck:
    offset: int
    declared: int
    computed: int
    length: int                             # quadlets the header asks to cover
    effective_length: Optional[int] = None  # set when fewer quadlets were available

    @property
    def ok(self) -> bool:
        return self.declared == self.computed

    @property
    def truncated(self) -> bool:
        return self.effective_length is not None

    @property
    def mismatch(self) -> Optional[ChecksumMismatch]:
        if self.ok:
            return None
        return ChecksumMismatch(self.offset, self.declared, self.computed)


def check_bus_info_crc(data: bytes) -> CrcCheck:
    """
    Bus info header: [info_len:8][crc_len:8][CRC:16].

    crc_len may reach past the bus information block into the root directory,
    and past the captured bytes of a short dump. In the latter case the CRC is
    computed over what is available and the substitution is reported.
    """
    header = be32(data, 0)
    crc_length = (header >> 16) & 0xFF
    declared = header & 0xFFFF

    effective = None
    count = crc_length
    if 4 * (crc_length + 1) > len(data):
        count = effective = (len(data) - 4) // 4

    computed = crc16_over_quadlets(read_quadlets(data, 4, count))
    return CrcCheck(offset=0, declared=declared, computed=computed, length=crc_length, effective_length=effective)


def check_block_crc(block) -> CrcCheck:
    """Leaf/directory header: [length:16][CRC:16], CRC over the payload quadlets."""
    quadlets = block.quadlets
    declared = quadlets[0] & 0xFFFF
    computed = crc16_over_quadlets(quadlets[1:])
    return CrcCheck(offset=block.offset, declared=declared, computed=computed, length=len(quadlets) - 1)
