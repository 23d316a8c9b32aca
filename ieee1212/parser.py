"""
IEEE 1212 Configuration ROM Parser
Handles both big-endian (wire format) and little-endian (host dump) ROMs.
"""

from logging import getLogger

from .blocks import ConfigROM
from .discovery import discover_blocks
from .errors import MalformedInput
from .normalize import normalize_blocks
from .quadlets import normalize_endianness

logger = getLogger(__name__)

# The region of the configuration ROM is fixed at 1 KiB by IEEE 1212.
CONFIG_ROM_SIZE = 1024
# Bus info header plus bus name, needed to tell the byte order.
MINIMUM_ROM_SIZE = 8


def parse_config_rom(rom_bytes: bytes) -> ConfigROM:
    if len(rom_bytes) < MINIMUM_ROM_SIZE:
        raise MalformedInput(len(rom_bytes), MINIMUM_ROM_SIZE)
    if len(rom_bytes) > CONFIG_ROM_SIZE:
        logger.debug("ignoring %d bytes past the configuration ROM region", len(rom_bytes) - CONFIG_ROM_SIZE)
        rom_bytes = rom_bytes[:CONFIG_ROM_SIZE]

    data, swapped = normalize_endianness(rom_bytes)
    if swapped:
        logger.debug("little-endian dump detected, swapped %d quadlets", len(data) // 4)

    rom = discover_blocks(data, swapped)
    return normalize_blocks(rom)
