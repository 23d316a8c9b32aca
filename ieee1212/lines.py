"""Column layout shared by every block formatter."""

from typing import List

# Offset of the configuration ROM in the initial register space. Printed
# offsets are relative to the start of that space, like the kernel does.
CONFIG_ROM_OFFSET = 0x400

LINE_WIDTH = 100

HORIZONTAL_LINE = "-" * 65


def line_prefix(offset: int, quadlet: int, delimiter: bool = True) -> str:
    prefix = f"{CONFIG_ROM_OFFSET + offset:3x}  {quadlet:08x}"
    return prefix + "  " if delimiter else prefix


def blank_prefix() -> str:
    return " " * len(line_prefix(0, 0))


def quadlet_text(quadlet: int) -> str:
    """ASCII letters of a quadlet, NULs skipped, anything unprintable as '.'."""
    return "".join(printable(b) for b in quadlet.to_bytes(4, "big") if b)


def printable(b: int) -> str:
    return chr(b) if 0x20 <= b < 0x7F else "."


def raw_lines(offset: int, quadlets: List[int]) -> List[str]:
    return [line_prefix(offset + 4 * i, q, False) for i, q in enumerate(quadlets)]
