"""
Decode failures for IEEE 1212 configuration ROMs.

Every fatal condition is a ValueError subclass so callers that only care about
"bad input" can catch ValueError, as they would for any other parser here.
Checksum mismatches are not exceptions: they are findings (see crc.py).
"""


class ConfigROMError(ValueError):
    """Base class for fatal decode failures."""


class MalformedInput(ConfigROMError):
    def __init__(self, length: int, minimum: int = 8):
        self.length = length
        self.minimum = minimum
        super().__init__(f"ROM too short: {length} bytes (need at least {minimum})")


class TruncatedBuffer(ConfigROMError):
    def __init__(self, offset: int, length: int, buffer_length: int):
        self.offset = offset
        self.length = length
        self.buffer_length = buffer_length
        super().__init__(
            f"block at rom+0x{offset:04x} declares {length} bytes, "
            f"but only {max(buffer_length - offset, 0)} are captured"
        )


class OffsetOutOfRange(ConfigROMError):
    def __init__(self, entry_offset: int, block_offset: int, buffer_length: int):
        self.entry_offset = entry_offset
        self.block_offset = block_offset
        self.buffer_length = buffer_length
        super().__init__(
            f"entry at rom+0x{entry_offset:04x} points to rom+0x{block_offset:04x}, "
            f"outside of {buffer_length} captured bytes"
        )


class CyclicReference(ConfigROMError):
    def __init__(self, entry_offset: int, block_offset: int):
        self.entry_offset = entry_offset
        self.block_offset = block_offset
        super().__init__(
            f"entry at rom+0x{entry_offset:04x} refers back to directory "
            f"rom+0x{block_offset:04x} which is still being walked"
        )


class AllocationFailure(ConfigROMError):
    def __init__(self, offset: int):
        self.offset = offset
        super().__init__(f"out of memory while recording block at rom+0x{offset:04x}")
